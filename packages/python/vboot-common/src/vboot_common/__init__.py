"""vboot common: shared models, constants and configuration."""

from vboot_common.constants import (
    DEFAULT_CLIENT_MAX_BODY_SIZE,
    DEFAULT_RATE_LIMIT_ZONE,
    DEFAULT_WORKER_CONNECTIONS,
    GITHUB_HOST,
    INSTALL_LOG,
    TOKEN_MASK,
)
from vboot_common.config import VbootConfig
from vboot_common.models import (
    Anchor,
    AnchorKind,
    AuditEvent,
    CredentialEntry,
    Directive,
    DirectiveOutcome,
    MatchMode,
    Outcome,
    Presence,
    ReconciliationResult,
    SiteConfig,
    is_valid_domain,
)

__all__ = [
    "Anchor",
    "AnchorKind",
    "AuditEvent",
    "CredentialEntry",
    "DEFAULT_CLIENT_MAX_BODY_SIZE",
    "DEFAULT_RATE_LIMIT_ZONE",
    "DEFAULT_WORKER_CONNECTIONS",
    "Directive",
    "DirectiveOutcome",
    "GITHUB_HOST",
    "INSTALL_LOG",
    "MatchMode",
    "Outcome",
    "Presence",
    "ReconciliationResult",
    "SiteConfig",
    "TOKEN_MASK",
    "VbootConfig",
    "is_valid_domain",
]
