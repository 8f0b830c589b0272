"""CLI configuration: singleton VbootConfig resolved at startup."""

from __future__ import annotations

from functools import lru_cache

from vboot_common import VbootConfig


@lru_cache(maxsize=1)
def get_config() -> VbootConfig:
    """Return the global VbootConfig (resolved once, cached)."""
    return VbootConfig()
