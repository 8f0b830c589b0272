"""OS-level subprocess wrappers: privilege, distribution, apt, systemctl."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from pathlib import Path

from vboot_common.constants import OS_RELEASE, SUPPORTED_OS_IDS

from vboot.errors import CommandError, PreconditionError


def run(
    cmd: list[str],
    *,
    check: bool = True,
    capture: bool = True,
    input: str | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run an external command. Raises CommandError when ``check`` and it fails."""
    try:
        return subprocess.run(
            cmd,
            check=check,
            capture_output=capture,
            text=True,
            input=input,
        )
    except subprocess.CalledProcessError as exc:
        raise CommandError(
            f"Command failed: {shlex.join(cmd)}\nstderr: {exc.stderr or ''}"
        ) from exc
    except FileNotFoundError as exc:
        raise CommandError(f"Command not found: {cmd[0]}") from exc


def which(tool: str) -> str | None:
    return shutil.which(tool)


def require_root(euid: int | None = None) -> None:
    """Abort unless running with root privileges."""
    if euid is None:
        euid = os.geteuid()
    if euid != 0:
        raise PreconditionError("This command must be run as root or with sudo")


def parse_os_release(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if not sep or key.startswith("#"):
            continue
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def detect_os(os_release: Path = OS_RELEASE) -> str:
    """Return the distribution's pretty name; only Ubuntu/Debian are supported."""
    if not os_release.exists():
        raise PreconditionError(f"Cannot detect OS. {os_release} not found.")
    values = parse_os_release(os_release.read_text())
    os_id = values.get("ID", "")
    if os_id not in SUPPORTED_OS_IDS:
        raise PreconditionError(
            f"This tool is designed for Ubuntu/Debian-based systems. Detected: {os_id or 'unknown'}"
        )
    return values.get("PRETTY_NAME", os_id)


def apt_update() -> None:
    run(["apt-get", "update", "-qq"])


def apt_upgrade() -> None:
    run(["apt-get", "upgrade", "-y", "-qq"])


def apt_install(*packages: str) -> None:
    run(["apt-get", "install", "-y", *packages])


def system_info() -> dict[str, str]:
    """Collect a few host facts for the installation banner."""
    info: dict[str, str] = {}
    try:
        info["OS Version"] = detect_os()
    except PreconditionError:
        info["OS Version"] = "unknown"
    info["Kernel"] = os.uname().release
    info["CPU Cores"] = str(os.cpu_count() or "?")

    meminfo = Path("/proc/meminfo")
    if meminfo.exists():
        for line in meminfo.read_text().splitlines():
            if line.startswith("MemTotal:"):
                kib = int(line.split()[1])
                info["Memory"] = f"{kib / 1024 / 1024:.1f}G"
                break

    usage = shutil.disk_usage("/")
    info["Disk Space"] = f"{usage.free / 1024 ** 3:.1f}G available"
    return info


def systemctl(action: str, unit: str) -> subprocess.CompletedProcess[str]:
    return run(["systemctl", action, unit])


def is_active(unit: str) -> bool:
    result = run(["systemctl", "is-active", "--quiet", unit], check=False)
    return result.returncode == 0


def service_status(unit: str) -> str:
    result = run(["systemctl", "status", unit, "--no-pager", "-l"], check=False)
    return result.stdout
