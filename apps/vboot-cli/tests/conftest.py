"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from vboot_common import VbootConfig
from vboot.config import get_config

UBUNTU_NGINX_CONF = """\
user www-data;
worker_processes auto;
pid /run/nginx.pid;
include /etc/nginx/modules-enabled/*.conf;

events {
\tworker_connections 768;
\t# multi_accept on;
}

http {

\t##
\t# Basic Settings
\t##

\tsendfile on;
\ttcp_nopush on;
\ttypes_hash_max_size 2048;
\t# server_tokens off;

\tinclude /etc/nginx/mime.types;
\tdefault_type application/octet-stream;

\t##
\t# Gzip Settings
\t##

\tgzip on;

\t# gzip_vary on;
\t# gzip_proxied any;
\t# gzip_comp_level 6;
\t# gzip_buffers 16 8k;
\t# gzip_types text/plain text/css application/json;

\t##
\t# Virtual Host Configs
\t##

\tinclude /etc/nginx/conf.d/*.conf;
\tinclude /etc/nginx/sites-enabled/*;
}
"""

MINIMAL_NGINX_CONF = """\
events {
    worker_connections 512;
}

http {
    include /etc/nginx/mime.types;
    server {
        listen 80;
    }
}
"""


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point every configurable path at a temp directory."""
    monkeypatch.setenv("VBOOT_HOST_ID", "test-host")
    monkeypatch.setenv("VBOOT_ACTOR", "tester")
    monkeypatch.setenv("VBOOT_NGINX_DIR", str(tmp_path / "etc" / "nginx"))
    monkeypatch.setenv("VBOOT_WEB_ROOT", str(tmp_path / "www"))
    monkeypatch.setenv("VBOOT_INSTALL_LOG", str(tmp_path / "log" / "nginx-install.log"))
    monkeypatch.setenv("VBOOT_CREDENTIALS", str(tmp_path / "home" / ".git-credentials"))
    monkeypatch.setenv("VBOOT_LOG_DIR", str(tmp_path / "log" / "vboot"))
    monkeypatch.setenv("VBOOT_AUDIT_DB", str(tmp_path / "lib" / "audit.db"))
    monkeypatch.delenv("VBOOT_CERTBOT_EMAIL", raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def tmp_config() -> VbootConfig:
    """Return the VbootConfig with an empty nginx layout on disk."""
    cfg = get_config()
    for d in [cfg.nginx_dir, cfg.conf_d_dir, cfg.sites_available_dir, cfg.sites_enabled_dir]:
        d.mkdir(parents=True, exist_ok=True)
    return cfg


@pytest.fixture
def ubuntu_conf(tmp_config: VbootConfig) -> Path:
    tmp_config.nginx_conf.write_text(UBUNTU_NGINX_CONF)
    return tmp_config.nginx_conf


@pytest.fixture
def minimal_conf(tmp_config: VbootConfig) -> Path:
    tmp_config.nginx_conf.write_text(MINIMAL_NGINX_CONF)
    return tmp_config.nginx_conf
