"""Global git configuration: identity and credential helper."""

from __future__ import annotations

import os

from vboot.errors import PreconditionError
from vboot.services import system


def installed() -> bool:
    return system.which("git") is not None


def git_version() -> str:
    return system.run(["git", "--version"], check=False).stdout.strip()


def ensure_git(euid: int | None = None) -> bool:
    """Install git via apt-get when missing. True if it was installed now."""
    if installed():
        return False
    if system.which("apt-get") is None:
        raise PreconditionError("Package manager 'apt-get' not found. Please install git manually.")
    if euid is None:
        euid = os.geteuid()
    if euid != 0:
        raise PreconditionError("Run as root or with sudo to install git, or install git manually.")
    system.apt_update()
    system.apt_install("git")
    return True


def get_global(key: str) -> str | None:
    result = system.run(["git", "config", "--global", key], check=False)
    value = result.stdout.strip()
    return value if result.returncode == 0 and value else None


def set_global(key: str, value: str) -> None:
    system.run(["git", "config", "--global", key, value])


def ensure_credential_store() -> bool:
    """Make sure the file-based 'store' helper is configured. True if changed."""
    helper = get_global("credential.helper") or ""
    if "store" in helper:
        return False
    set_global("credential.helper", "store")
    return True
