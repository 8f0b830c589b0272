"""Central configuration for vboot tools."""

from __future__ import annotations

import os
import socket
from pathlib import Path

from pydantic import BaseModel, Field

from vboot_common.constants import (
    AUDIT_DB_PATH,
    AUDIT_JSONL_NAME,
    DEFAULT_CLIENT_MAX_BODY_SIZE,
    DEFAULT_WORKER_CONNECTIONS,
    GIT_CREDENTIALS,
    INSTALL_LOG,
    LOG_DIR,
    NGINX_CONF_D,
    NGINX_CONF_NAME,
    NGINX_DIR,
    NGINX_LOG_DIR,
    NGINX_SITES_AVAILABLE,
    NGINX_SITES_ENABLED,
    RATE_LIMIT_CONF,
    SECURITY_HEADERS_CONF,
    USER_STATE_DIR,
    WEB_ROOT_BASE,
    WEB_USER,
)


def _env_path(name: str, default: Path) -> Path:
    env = os.environ.get(name)
    return Path(env).expanduser() if env else default


def _is_root() -> bool:
    return os.geteuid() == 0


def _default_log_dir() -> Path:
    # Unprivileged runs (vboot github) cannot write under /var/log
    if _is_root():
        return LOG_DIR
    return USER_STATE_DIR


def _default_audit_db() -> Path:
    if _is_root():
        return AUDIT_DB_PATH
    return USER_STATE_DIR / "audit.db"


class VbootConfig(BaseModel):
    """Runtime configuration resolved once at startup."""

    host_id: str = Field(default_factory=lambda: os.environ.get("VBOOT_HOST_ID", socket.gethostname()))
    nginx_dir: Path = Field(default_factory=lambda: _env_path("VBOOT_NGINX_DIR", NGINX_DIR))
    nginx_log_dir: Path = Field(default=NGINX_LOG_DIR)
    web_root_base: Path = Field(default_factory=lambda: _env_path("VBOOT_WEB_ROOT", WEB_ROOT_BASE))
    web_user: str = Field(default=WEB_USER)
    install_log: Path = Field(default_factory=lambda: _env_path("VBOOT_INSTALL_LOG", INSTALL_LOG))
    credentials_path: Path = Field(default_factory=lambda: _env_path("VBOOT_CREDENTIALS", GIT_CREDENTIALS))
    certbot_email: str | None = Field(default_factory=lambda: os.environ.get("VBOOT_CERTBOT_EMAIL") or None)
    client_max_body_size: str = Field(default=DEFAULT_CLIENT_MAX_BODY_SIZE)
    worker_connections: int = Field(default=DEFAULT_WORKER_CONNECTIONS)
    log_dir: Path = Field(default_factory=lambda: _env_path("VBOOT_LOG_DIR", _default_log_dir()))
    audit_db_path: Path = Field(default_factory=lambda: _env_path("VBOOT_AUDIT_DB", _default_audit_db()))

    @property
    def nginx_conf(self) -> Path:
        return self.nginx_dir / NGINX_CONF_NAME

    @property
    def conf_d_dir(self) -> Path:
        return self.nginx_dir / NGINX_CONF_D

    @property
    def sites_available_dir(self) -> Path:
        return self.nginx_dir / NGINX_SITES_AVAILABLE

    @property
    def sites_enabled_dir(self) -> Path:
        return self.nginx_dir / NGINX_SITES_ENABLED

    @property
    def security_headers_conf(self) -> Path:
        return self.conf_d_dir / SECURITY_HEADERS_CONF

    @property
    def rate_limit_conf(self) -> Path:
        return self.conf_d_dir / RATE_LIMIT_CONF

    @property
    def audit_jsonl_path(self) -> Path:
        return self.log_dir / AUDIT_JSONL_NAME

    def default_document_root(self, domain: str) -> Path:
        return self.web_root_base / domain
