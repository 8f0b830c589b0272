"""vboot: interactive VPS bootstrap for git credentials and nginx."""

__version__ = "0.1.0"
