"""Static site provisioning under sites-available / sites-enabled.

Filesystem failures surface as SiteError so menu actions can report them
and return the operator to the menu.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

from vboot_common import SiteConfig, VbootConfig

from vboot.errors import SiteError
from vboot.services import renderer, system

_ROOT_RE = re.compile(r"^\s*root\s+([^;\s]+)\s*;", re.MULTILINE)


def site_config_path(cfg: VbootConfig, domain: str) -> Path:
    return cfg.sites_available_dir / domain


def site_link_path(cfg: VbootConfig, domain: str) -> Path:
    return cfg.sites_enabled_dir / domain


def site_exists(cfg: VbootConfig, domain: str) -> bool:
    return site_config_path(cfg, domain).exists()


def prepare_document_root(site: SiteConfig, cfg: VbootConfig, *, overwrite_index: bool = False) -> Path:
    """Create the document root with a placeholder index owned by the web user.

    Only the root directory and an index written here get their mode set;
    existing content of a reused root keeps its permissions.
    """
    root = site.document_root
    index = root / "index.html"
    try:
        root.mkdir(parents=True, exist_ok=True)
        root.chmod(0o755)
        if overwrite_index or not index.exists():
            renderer.write_file(index, renderer.render_index(site))
            index.chmod(0o644)
    except OSError as exc:
        raise SiteError(f"Cannot prepare document root {root}: {exc}") from exc
    if system.which("chown"):
        system.run(["chown", "-R", f"{cfg.web_user}:{cfg.web_user}", str(root)], check=False)
    return root


def write_site(site: SiteConfig, cfg: VbootConfig) -> Path:
    path = site_config_path(cfg, site.domain)
    try:
        renderer.write_file(path, renderer.render_site(site))
    except OSError as exc:
        raise SiteError(f"Cannot write site config {path}: {exc}") from exc
    return path


def enable_site(cfg: VbootConfig, domain: str) -> Path:
    """(Re)create the sites-enabled symlink."""
    link = site_link_path(cfg, domain)
    try:
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(site_config_path(cfg, domain))
    except OSError as exc:
        raise SiteError(f"Cannot enable {domain}: {exc}") from exc
    return link


def is_enabled(cfg: VbootConfig, domain: str) -> bool:
    link = site_link_path(cfg, domain)
    return link.is_symlink() or link.exists()


def disable_site(cfg: VbootConfig, domain: str) -> bool:
    """Remove the symlink, keep the config. False if it was already disabled."""
    link = site_link_path(cfg, domain)
    if not (link.is_symlink() or link.exists()):
        return False
    try:
        link.unlink()
    except OSError as exc:
        raise SiteError(f"Cannot disable {domain}: {exc}") from exc
    return True


def read_document_root(cfg: VbootConfig, domain: str) -> Path | None:
    path = site_config_path(cfg, domain)
    if not path.exists():
        return None
    try:
        text = path.read_text()
    except OSError as exc:
        raise SiteError(f"Cannot read site config {path}: {exc}") from exc
    match = _ROOT_RE.search(text)
    return Path(match.group(1)) if match else None


def delete_site(cfg: VbootConfig, domain: str) -> Path | None:
    """Remove symlink and config. Returns the document root the config pointed at."""
    doc_root = read_document_root(cfg, domain)
    disable_site(cfg, domain)
    path = site_config_path(cfg, domain)
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        raise SiteError(f"Cannot delete site config {path}: {exc}") from exc
    return doc_root


def remove_document_root(root: Path) -> None:
    try:
        shutil.rmtree(root)
    except OSError as exc:
        raise SiteError(f"Cannot remove document root {root}: {exc}") from exc


def list_sites(cfg: VbootConfig) -> list[tuple[str, bool]]:
    """(domain, enabled) for every available site except ``default``."""
    if not cfg.sites_available_dir.exists():
        return []
    return [
        (p.name, is_enabled(cfg, p.name))
        for p in sorted(cfg.sites_available_dir.iterdir())
        if p.is_file() and p.name != "default"
    ]


def list_enabled(cfg: VbootConfig) -> list[str]:
    if not cfg.sites_enabled_dir.exists():
        return []
    return sorted(p.name for p in cfg.sites_enabled_dir.iterdir())


def provision_site(site: SiteConfig, cfg: VbootConfig, *, overwrite_index: bool = False) -> Path:
    """Document root, site config and symlink. Returns the config path."""
    prepare_document_root(site, cfg, overwrite_index=overwrite_index)
    path = write_site(site, cfg)
    enable_site(cfg, site.domain)
    return path
