"""Custom exceptions for the vboot CLI."""

from __future__ import annotations


class VbootError(Exception):
    """Base exception for all vboot operations."""

    def __init__(self, message: str, *, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


class PreconditionError(VbootError):
    """Missing privilege, unsupported OS or missing required tool."""


class CommandError(VbootError):
    """An external command exited non-zero."""


class NginxConfigError(VbootError):
    """NGINX configuration validation failed."""


class CertbotError(VbootError):
    """Certbot operation failed."""


class AnchorNotFoundError(VbootError):
    """A directive had to be inserted but its anchor line is missing."""


class CredentialStoreError(VbootError):
    """The git credential store could not be read or written."""


class InvalidRepoUrlError(VbootError):
    """A repository URL is not of the form https://github.com/owner/repo."""


class SiteError(VbootError):
    """A site's config, symlink or document root could not be written or removed."""


class InvalidCredentialError(VbootError):
    """A username or token cannot be stored in the credential URL form."""
