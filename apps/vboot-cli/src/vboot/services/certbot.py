"""Certbot certificate issuance and renewal (nginx plugin)."""

from __future__ import annotations

import re

from vboot.errors import CertbotError
from vboot.services import system


def installed() -> bool:
    return system.which("certbot") is not None


def ensure_installed() -> bool:
    """Install certbot and its nginx plugin if missing. True if it was installed now."""
    if installed():
        return False
    system.apt_install("certbot", "python3-certbot-nginx")
    return True


def obtain_command(domain: str, *, include_www: bool = True, email: str | None = None) -> list[str]:
    cmd = ["certbot", "--nginx", "-d", domain]
    if include_www:
        cmd.extend(["-d", f"www.{domain}"])
    cmd.extend(["--non-interactive", "--agree-tos"])
    if email:
        cmd.extend(["--email", email, "--no-eff-email"])
    else:
        cmd.append("--register-unsafely-without-email")
    cmd.append("--redirect")
    return cmd


def issue_cert(domain: str, *, include_www: bool = True, email: str | None = None) -> None:
    """Obtain a Let's Encrypt certificate and let certbot wire it into nginx."""
    result = system.run(obtain_command(domain, include_www=include_www, email=email), check=False)
    if result.returncode != 0:
        raise CertbotError(f"Certbot failed for {domain}:\n{result.stderr}")


def renew_dry_run() -> bool:
    result = system.run(["certbot", "renew", "--dry-run"], check=False)
    return result.returncode == 0


def renew() -> str:
    """Run certbot renew for all certificates."""
    result = system.run(["certbot", "renew"], check=False)
    if result.returncode != 0:
        raise CertbotError(f"Certbot renew failed:\n{result.stderr}")
    return result.stdout + result.stderr


def renew_cert(name: str) -> str:
    """Force renewal of one certificate lineage."""
    result = system.run(["certbot", "renew", "--cert-name", name, "--force-renewal"], check=False)
    if result.returncode != 0:
        raise CertbotError(f"Certbot renew failed for {name}:\n{result.stderr}")
    return result.stdout + result.stderr


def list_certs() -> str:
    result = system.run(["certbot", "certificates"], check=False)
    return result.stdout + result.stderr


def parse_expiry(output: str) -> list[tuple[str, str]]:
    """Extract (certificate name, expiry) pairs from ``certbot certificates``."""
    pairs: list[tuple[str, str]] = []
    name: str | None = None
    for line in output.splitlines():
        line = line.strip()
        m = re.match(r"Certificate Name:\s*(\S+)", line)
        if m:
            name = m.group(1)
            continue
        m = re.match(r"Expiry Date:\s*(.+)", line)
        if m and name:
            pairs.append((name, m.group(1).strip()))
            name = None
    return pairs
