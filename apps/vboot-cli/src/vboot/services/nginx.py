"""NGINX config validation and service control."""

from __future__ import annotations

from vboot.errors import NginxConfigError
from vboot.services import system

UNIT = "nginx"


def installed() -> bool:
    return system.which("nginx") is not None


def version() -> str | None:
    """Return the nginx version (``nginx -v`` prints to stderr)."""
    if not installed():
        return None
    result = system.run(["nginx", "-v"], check=False)
    output = (result.stderr or result.stdout).strip()
    _, _, ver = output.partition("/")
    return ver.split()[0] if ver else None


def test_config() -> str:
    """Run nginx -t. Raises NginxConfigError on failure."""
    result = system.run(["nginx", "-t"], check=False)
    output = (result.stdout + result.stderr).strip()
    if result.returncode != 0:
        raise NginxConfigError(f"NGINX config test failed:\n{output}")
    return output


def reload() -> None:
    """Validate config, then reload NGINX."""
    test_config()
    system.systemctl("reload", UNIT)


def restart() -> None:
    """Validate config, then restart NGINX."""
    test_config()
    system.systemctl("restart", UNIT)


def start() -> None:
    system.systemctl("start", UNIT)


def stop() -> None:
    system.systemctl("stop", UNIT)


def enable() -> None:
    system.systemctl("enable", UNIT)


def disable() -> None:
    system.systemctl("disable", UNIT)


def is_running() -> bool:
    return system.is_active(UNIT)


def status() -> str:
    return system.service_status(UNIT)
