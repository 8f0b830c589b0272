"""Site configuration model."""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from vboot_common.constants import DEFAULT_RATE_LIMIT_ZONE, NGINX_LOG_DIR

DOMAIN_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?"
    r"(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*"
    r"\.[a-zA-Z]{2,}$"
)


def is_valid_domain(domain: str) -> bool:
    return bool(domain) and DOMAIN_RE.match(domain) is not None


class SiteConfig(BaseModel):
    """A static site served from a document root."""

    domain: str
    document_root: Path
    include_www: bool = True
    rate_limit_zone: str | None = DEFAULT_RATE_LIMIT_ZONE
    index_files: list[str] = Field(
        default_factory=lambda: ["index.html", "index.htm", "index.nginx-debian.html"]
    )
    log_dir: Path = NGINX_LOG_DIR

    @field_validator("domain")
    @classmethod
    def _valid_domain(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_domain(value):
            raise ValueError(f"invalid domain name: {value!r}")
        return value

    @property
    def server_names(self) -> list[str]:
        names = [self.domain]
        if self.include_www:
            names.append(f"www.{self.domain}")
        return names

    @property
    def access_log(self) -> Path:
        return self.log_dir / f"{self.domain}_access.log"

    @property
    def error_log(self) -> Path:
        return self.log_dir / f"{self.domain}_error.log"
