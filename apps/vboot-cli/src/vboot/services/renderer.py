"""Jinja2-based renderer for nginx site configs and auxiliary conf.d files."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from vboot_common import SiteConfig

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

SECURITY_HEADERS: list[tuple[str, str]] = [
    ("X-Content-Type-Options", "nosniff"),
    ("X-Frame-Options", "DENY"),
    ("X-XSS-Protection", "1; mode=block"),
    ("Referrer-Policy", "strict-origin-when-cross-origin"),
]

RATE_LIMIT_ZONES: list[dict[str, str]] = [
    {"name": "general", "size": "10m", "rate": "10r/s"},
    {"name": "login", "size": "10m", "rate": "1r/s"},
]


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "html.j2"]),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_site(site: SiteConfig) -> str:
    """Render the HTTP server block for a static site."""
    return _get_env().get_template("site.conf.j2").render(site=site)


def render_index(site: SiteConfig) -> str:
    """Render the placeholder landing page."""
    return _get_env().get_template("index.html.j2").render(site=site)


def render_security_headers(headers: list[tuple[str, str]] | None = None) -> str:
    template = _get_env().get_template("security-headers.conf.j2")
    return template.render(headers=headers if headers is not None else SECURITY_HEADERS)


def render_rate_limit(zones: list[dict[str, str]] | None = None) -> str:
    template = _get_env().get_template("rate-limit.conf.j2")
    return template.render(zones=zones if zones is not None else RATE_LIMIT_ZONES)


def write_file(path: Path, content: str) -> None:
    """Write a rendered config to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
