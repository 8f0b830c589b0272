"""Shared Pydantic models."""

from vboot_common.models.audit_event import AuditEvent
from vboot_common.models.credential import CredentialEntry
from vboot_common.models.directive import (
    Anchor,
    AnchorKind,
    Directive,
    DirectiveOutcome,
    MatchMode,
    Outcome,
    Presence,
    ReconciliationResult,
)
from vboot_common.models.site import SiteConfig, is_valid_domain

__all__ = [
    "Anchor",
    "AnchorKind",
    "AuditEvent",
    "CredentialEntry",
    "Directive",
    "DirectiveOutcome",
    "MatchMode",
    "Outcome",
    "Presence",
    "ReconciliationResult",
    "SiteConfig",
    "is_valid_domain",
]
