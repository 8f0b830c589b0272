"""UFW firewall rules for HTTP/HTTPS."""

from __future__ import annotations

import re

from vboot.services import system

NGINX_PROFILE = "Nginx Full"


def installed() -> bool:
    return system.which("ufw") is not None


def status(verbose: bool = False) -> str:
    cmd = ["ufw", "status"]
    if verbose:
        cmd.append("verbose")
    return system.run(cmd, check=False).stdout


def is_active() -> bool:
    first = status().strip().splitlines()[:1]
    return bool(first) and first[0].split(":", 1)[-1].strip() == "active"


def allow_nginx() -> None:
    system.run(["ufw", "allow", NGINX_PROFILE])


def delete_nginx() -> None:
    system.run(["ufw", "delete", "allow", NGINX_PROFILE])


def web_ports_open(status_output: str | None = None) -> bool:
    """True when the rule table mentions port 80, 443 or the Nginx profile."""
    text = status_output if status_output is not None else status()
    return re.search(r"\b(80|443)\b|Nginx (Full|HTTP|HTTPS)", text) is not None
