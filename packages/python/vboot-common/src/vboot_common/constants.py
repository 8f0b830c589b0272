"""Shared constants for the vboot tools."""

from pathlib import Path

# NGINX layout (Debian/Ubuntu packaging)
NGINX_DIR = Path("/etc/nginx")
NGINX_CONF_NAME = "nginx.conf"
NGINX_CONF_D = "conf.d"
NGINX_SITES_AVAILABLE = "sites-available"
NGINX_SITES_ENABLED = "sites-enabled"
SECURITY_HEADERS_CONF = "security-headers.conf"
RATE_LIMIT_CONF = "rate-limit.conf"
NGINX_LOG_DIR = Path("/var/log/nginx")

# Sites
WEB_ROOT_BASE = Path("/var/www")
WEB_USER = "www-data"
DEFAULT_RATE_LIMIT_ZONE = "general"

# Installation log (append-only, human readable)
INSTALL_LOG = Path("/var/log/nginx-install.log")

# Audit
LOG_DIR = Path("/var/log/vboot")
AUDIT_JSONL_NAME = "audit.jsonl"
AUDIT_DB_PATH = Path("/var/lib/vboot/audit.db")
USER_STATE_DIR = Path.home() / ".local" / "state" / "vboot"

# Git credentials
GIT_CREDENTIALS = Path.home() / ".git-credentials"
GITHUB_HOST = "github.com"
TOKEN_MASK = "***"

# Tuning defaults
DEFAULT_CLIENT_MAX_BODY_SIZE = "10M"
DEFAULT_WORKER_CONNECTIONS = 1024
GZIP_TYPES = (
    "text/plain text/css text/xml text/javascript application/json "
    "application/javascript application/xml+rss application/rss+xml "
    "font/truetype font/opentype application/vnd.ms-fontobject image/svg+xml"
)

# Supported distributions (ID field of /etc/os-release)
SUPPORTED_OS_IDS = ("ubuntu", "debian")
OS_RELEASE = Path("/etc/os-release")
