"""Security hardening and performance tuning of the main nginx.conf.

The main file is edited through the reconciler; the auxiliary conf.d files
(security headers, rate-limit zones) are rewritten wholesale on every run.
"""

from __future__ import annotations

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from vboot_common import Anchor, Directive, Presence, ReconciliationResult, VbootConfig
from vboot_common.constants import GZIP_TYPES

from vboot.errors import NginxConfigError
from vboot.services import renderer
from vboot.services.reconciler import reconcile

log = logging.getLogger(__name__)

HTTP_BLOCK = r"^\s*http\s*\{"
EVENTS_BLOCK = r"^\s*events\s*\{"
CONF_D_WILDCARD = re.compile(r"^\s*include\s+\S*conf\.d/\*\.conf\s*;", re.MULTILINE)
GENERAL_ZONE = re.compile(r"^\s*limit_req_zone\b.*\bzone=general\b", re.MULTILINE)

INDENT = "    "


def has_conf_d_wildcard(text: str) -> bool:
    return CONF_D_WILDCARD.search(text) is not None


def defines_general_zone(text: str) -> bool:
    return GENERAL_ZONE.search(text) is not None


def _include(path: Path, name: str, presence: Presence) -> Directive:
    return Directive(
        name=f"include {name}",
        match_pattern=rf"^\s*include\s+\S*{re.escape(name)}\s*;",
        desired_line=f"{INDENT}include {path};",
        anchor=Anchor.after(HTTP_BLOCK),
        presence=presence,
    )


def security_directives(text: str, cfg: VbootConfig) -> list[Directive]:
    """Directives for server_tokens, auxiliary includes and body size limit.

    The explicit includes are only wanted when nginx.conf does not already pull
    in ``conf.d/*.conf``; otherwise they are removed to avoid double loading.
    """
    directives = [
        Directive(
            name="server_tokens",
            match_pattern=r"^\s*#?\s*server_tokens\b",
            desired_line=f"{INDENT}server_tokens off;",
            anchor=Anchor.after(HTTP_BLOCK),
        ),
    ]

    wildcard = has_conf_d_wildcard(text)
    headers_name = cfg.security_headers_conf.name
    rate_name = cfg.rate_limit_conf.name

    if wildcard:
        directives.append(_include(cfg.security_headers_conf, headers_name, Presence.ABSENT))
        directives.append(_include(cfg.rate_limit_conf, rate_name, Presence.ABSENT))
    else:
        directives.append(_include(cfg.security_headers_conf, headers_name, Presence.PRESENT))
        if defines_general_zone(text):
            log.warning("limit_req_zone 'general' already defined in %s; not including %s",
                        cfg.nginx_conf, rate_name)
            # zone=general may only be declared once
            directives.append(_include(cfg.rate_limit_conf, rate_name, Presence.ABSENT))
        else:
            directives.append(_include(cfg.rate_limit_conf, rate_name, Presence.PRESENT))

    directives.append(
        Directive(
            name="client_max_body_size",
            match_pattern=r"^\s*client_max_body_size\b",
            desired_line=f"{INDENT}client_max_body_size {cfg.client_max_body_size};",
            anchor=Anchor.after(HTTP_BLOCK),
            replace_existing=False,
        )
    )
    return directives


def performance_directives(cfg: VbootConfig) -> list[Directive]:
    """Worker tuning and gzip compression."""
    http = Anchor.after(HTTP_BLOCK)
    gzip: list[tuple[str, str]] = [
        (r"^\s*#?\s*gzip\s+(on|off)\s*;", "gzip on;"),
        (r"^\s*#?\s*gzip_vary\b", "gzip_vary on;"),
        (r"^\s*#?\s*gzip_proxied\b", "gzip_proxied any;"),
        (r"^\s*#?\s*gzip_comp_level\b", "gzip_comp_level 6;"),
        (r"^\s*#?\s*gzip_types\b", f"gzip_types {GZIP_TYPES};"),
    ]
    return [
        Directive(
            name="worker_processes",
            match_pattern=r"^\s*worker_processes\b",
            desired_line="worker_processes auto;",
            anchor=Anchor.start(),
        ),
        Directive(
            name="worker_connections",
            match_pattern=r"^\s*worker_connections\b",
            desired_line=f"{INDENT}worker_connections {cfg.worker_connections};",
            anchor=Anchor.after(EVENTS_BLOCK),
        ),
    ] + [
        Directive(
            name=line.split()[0],
            match_pattern=pattern,
            desired_line=f"{INDENT}{line}",
            anchor=http,
        )
        for pattern, line in gzip
    ]


def hardening_directives(text: str, cfg: VbootConfig) -> list[Directive]:
    return performance_directives(cfg) + security_directives(text, cfg)


def backup_config(path: Path, now: datetime | None = None) -> Path | None:
    """Copy ``path`` to ``<path>.backup.<YYYYmmdd_HHMMSS>``; None if it does not exist."""
    if not path.exists():
        return None
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    backup = path.with_name(f"{path.name}.backup.{stamp}")
    counter = 1
    while backup.exists():
        backup = path.with_name(f"{path.name}.backup.{stamp}.{counter}")
        counter += 1
    shutil.copy2(path, backup)
    return backup


def read_config(path: Path) -> str:
    try:
        return path.read_text()
    except OSError as exc:
        raise NginxConfigError(f"Cannot read {path}: {exc}") from exc


def _restore(path: Path, backup: Path | None, original: str) -> None:
    try:
        if backup is not None:
            shutil.copy2(backup, path)
        else:
            path.write_text(original)
    except OSError as exc:
        raise NginxConfigError(f"Cannot restore {path} from {backup}: {exc}") from exc


def apply_config(
    path: Path,
    directives: list[Directive],
    validate: Callable[[], Any],
) -> ReconciliationResult:
    """Reconcile ``path`` against ``directives`` and commit only if ``validate`` passes.

    Nothing is written when the file is already reconciled. On a failed
    write or validation the backup is restored and NginxConfigError is raised.
    """
    original = read_config(path)
    result = reconcile(original, directives)
    if not result.changed:
        log.info("%s already up to date", path)
        return result

    try:
        backup = backup_config(path)
    except OSError as exc:
        raise NginxConfigError(f"Cannot back up {path}: {exc}") from exc
    try:
        path.write_text(result.text)
    except OSError as exc:
        _restore(path, backup, original)
        raise NginxConfigError(f"Cannot write {path}: {exc}") from exc
    try:
        validate()
    except NginxConfigError:
        _restore(path, backup, original)
        log.error("validation failed for %s; restored previous version", path)
        raise
    log.info("updated %s (%s); backup at %s", path, result.summary(), backup)
    return result


def write_auxiliary_files(cfg: VbootConfig) -> list[Path]:
    """Rewrite the security-headers and rate-limit conf.d files."""
    try:
        cfg.conf_d_dir.mkdir(parents=True, exist_ok=True)
        renderer.write_file(cfg.security_headers_conf, renderer.render_security_headers())
        renderer.write_file(cfg.rate_limit_conf, renderer.render_rate_limit())
    except OSError as exc:
        raise NginxConfigError(f"Cannot write auxiliary files in {cfg.conf_d_dir}: {exc}") from exc
    return [cfg.security_headers_conf, cfg.rate_limit_conf]


def harden(cfg: VbootConfig, validate: Callable[[], Any]) -> ReconciliationResult:
    """Write auxiliary files, then reconcile nginx.conf with hardening directives."""
    text = read_config(cfg.nginx_conf)
    write_auxiliary_files(cfg)
    return apply_config(cfg.nginx_conf, hardening_directives(text, cfg), validate)
