"""Tests for nginx.conf hardening."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from vboot_common import Outcome, VbootConfig
from vboot_common.constants import GZIP_TYPES
from vboot.errors import AnchorNotFoundError, NginxConfigError
from vboot.services import nginx_conf
from vboot.services.reconciler import reconcile

from conftest import MINIMAL_NGINX_CONF, UBUNTU_NGINX_CONF


def _outcomes(result) -> dict[str, Outcome]:
    return {o.name: o.outcome for o in result.outcomes}


class TestHardeningDirectives:
    def test_minimal_config(self, tmp_config: VbootConfig):
        directives = nginx_conf.hardening_directives(MINIMAL_NGINX_CONF, tmp_config)
        result = reconcile(MINIMAL_NGINX_CONF, directives)

        assert result.text == (
            "worker_processes auto;\n"
            "events {\n"
            "    worker_connections 1024;\n"
            "}\n"
            "\n"
            "http {\n"
            "    gzip on;\n"
            "    gzip_vary on;\n"
            "    gzip_proxied any;\n"
            "    gzip_comp_level 6;\n"
            f"    gzip_types {GZIP_TYPES};\n"
            "    server_tokens off;\n"
            f"    include {tmp_config.security_headers_conf};\n"
            f"    include {tmp_config.rate_limit_conf};\n"
            "    client_max_body_size 10M;\n"
            "    include /etc/nginx/mime.types;\n"
            "    server {\n"
            "        listen 80;\n"
            "    }\n"
            "}\n"
        )

    def test_ubuntu_config_edits_in_place(self, tmp_config: VbootConfig):
        directives = nginx_conf.hardening_directives(UBUNTU_NGINX_CONF, tmp_config)
        result = reconcile(UBUNTU_NGINX_CONF, directives)
        outcomes = _outcomes(result)
        lines = result.text.splitlines()

        assert outcomes["worker_processes"] is Outcome.UNCHANGED
        assert outcomes["worker_connections"] is Outcome.REPLACED
        assert outcomes["server_tokens"] is Outcome.REPLACED
        assert outcomes["gzip_vary"] is Outcome.REPLACED
        assert outcomes["client_max_body_size"] is Outcome.INSERTED
        # conf.d/*.conf already pulls the auxiliary files in
        assert outcomes["include security-headers.conf"] is Outcome.UNCHANGED
        assert outcomes["include rate-limit.conf"] is Outcome.UNCHANGED
        assert not any("security-headers.conf" in line for line in lines)

        assert "\t# server_tokens off;" not in lines
        assert lines.index("    server_tokens off;") < lines.index("\tinclude /etc/nginx/mime.types;")
        assert lines[lines.index("http {") + 1] == "    client_max_body_size 10M;"
        assert "\t# gzip_buffers 16 8k;" in lines
        assert "\tinclude /etc/nginx/sites-enabled/*;" in lines

    @pytest.mark.parametrize("text", [MINIMAL_NGINX_CONF, UBUNTU_NGINX_CONF])
    def test_second_run_is_noop(self, tmp_config: VbootConfig, text: str):
        first = reconcile(text, nginx_conf.hardening_directives(text, tmp_config))
        second = reconcile(first.text, nginx_conf.hardening_directives(first.text, tmp_config))
        assert second.all_unchanged
        assert second.text == first.text

    def test_stale_include_removed_with_wildcard(self, tmp_config: VbootConfig):
        text = UBUNTU_NGINX_CONF.replace(
            "http {\n", "http {\n    include /etc/nginx/conf.d/security-headers.conf;\n", 1
        )
        result = reconcile(text, nginx_conf.security_directives(text, tmp_config))
        assert _outcomes(result)["include security-headers.conf"] is Outcome.REMOVED
        assert "security-headers.conf" not in result.text

    def test_existing_general_zone_drops_rate_limit_include(self, tmp_config: VbootConfig):
        text = MINIMAL_NGINX_CONF.replace(
            "http {\n",
            "http {\n"
            "    limit_req_zone $binary_remote_addr zone=general:10m rate=5r/s;\n"
            "    include /etc/nginx/conf.d/rate-limit.conf;\n",
        )
        result = reconcile(text, nginx_conf.security_directives(text, tmp_config))
        outcomes = _outcomes(result)

        assert outcomes["include security-headers.conf"] is Outcome.INSERTED
        assert outcomes["include rate-limit.conf"] is Outcome.REMOVED
        assert "rate-limit.conf" not in result.text
        assert "zone=general:10m rate=5r/s;" in result.text

        again = reconcile(result.text, nginx_conf.security_directives(result.text, tmp_config))
        assert again.all_unchanged

    def test_client_max_body_size_kept(self, tmp_config: VbootConfig):
        text = MINIMAL_NGINX_CONF.replace("http {\n", "http {\n    client_max_body_size 100M;\n")
        result = reconcile(text, nginx_conf.security_directives(text, tmp_config))
        assert "client_max_body_size 100M;" in result.text
        assert "client_max_body_size 10M;" not in result.text

    def test_worker_connections_from_config(self, tmp_config: VbootConfig):
        cfg = tmp_config.model_copy(update={"worker_connections": 4096})
        result = reconcile(MINIMAL_NGINX_CONF, nginx_conf.performance_directives(cfg))
        assert "    worker_connections 4096;" in result.text.splitlines()


class TestBackup:
    def test_backup_name(self, tmp_path: Path):
        conf = tmp_path / "nginx.conf"
        conf.write_text("x")
        backup = nginx_conf.backup_config(conf, now=datetime(2024, 5, 1, 12, 30, 5))
        assert backup == tmp_path / "nginx.conf.backup.20240501_123005"
        assert backup.read_text() == "x"

    def test_backup_collision(self, tmp_path: Path):
        conf = tmp_path / "nginx.conf"
        conf.write_text("x")
        now = datetime(2024, 5, 1, 12, 30, 5)
        first = nginx_conf.backup_config(conf, now=now)
        second = nginx_conf.backup_config(conf, now=now)
        assert first != second
        assert second.name == "nginx.conf.backup.20240501_123005.1"

    def test_missing_file(self, tmp_path: Path):
        assert nginx_conf.backup_config(tmp_path / "missing.conf") is None


class TestApplyConfig:
    def test_writes_and_backs_up(self, tmp_config: VbootConfig, minimal_conf: Path):
        validate = MagicMock()
        directives = nginx_conf.hardening_directives(MINIMAL_NGINX_CONF, tmp_config)
        result = nginx_conf.apply_config(minimal_conf, directives, validate)

        validate.assert_called_once()
        assert result.changed
        assert minimal_conf.read_text() == result.text
        backups = list(minimal_conf.parent.glob("nginx.conf.backup.*"))
        assert len(backups) == 1
        assert backups[0].read_text() == MINIMAL_NGINX_CONF

    def test_noop_leaves_file_alone(self, tmp_config: VbootConfig, minimal_conf: Path):
        directives = nginx_conf.hardening_directives(MINIMAL_NGINX_CONF, tmp_config)
        nginx_conf.apply_config(minimal_conf, directives, MagicMock())
        for backup in minimal_conf.parent.glob("nginx.conf.backup.*"):
            backup.unlink()

        validate = MagicMock()
        text = minimal_conf.read_text()
        result = nginx_conf.apply_config(
            minimal_conf, nginx_conf.hardening_directives(text, tmp_config), validate
        )
        assert result.all_unchanged
        validate.assert_not_called()
        assert list(minimal_conf.parent.glob("nginx.conf.backup.*")) == []

    def test_failed_validation_restores(self, tmp_config: VbootConfig, minimal_conf: Path):
        validate = MagicMock(side_effect=NginxConfigError("nginx: [emerg] unknown directive"))
        directives = nginx_conf.hardening_directives(MINIMAL_NGINX_CONF, tmp_config)
        with pytest.raises(NginxConfigError):
            nginx_conf.apply_config(minimal_conf, directives, validate)
        assert minimal_conf.read_text() == MINIMAL_NGINX_CONF


class TestHarden:
    def test_writes_auxiliary_files(self, tmp_config: VbootConfig, ubuntu_conf: Path):
        nginx_conf.harden(tmp_config, validate=MagicMock())

        headers = tmp_config.security_headers_conf.read_text()
        assert 'add_header X-Frame-Options "DENY" always;' in headers
        assert 'add_header X-Content-Type-Options "nosniff" always;' in headers
        rate = tmp_config.rate_limit_conf.read_text()
        assert "limit_req_zone $binary_remote_addr zone=general:10m rate=10r/s;" in rate
        assert "zone=login:10m rate=1r/s;" in rate
        assert "server_tokens off;" in ubuntu_conf.read_text()

    def test_missing_http_block(self, tmp_config: VbootConfig):
        tmp_config.nginx_conf.write_text("events {\n}\n")
        with pytest.raises(AnchorNotFoundError):
            nginx_conf.harden(tmp_config, validate=MagicMock())
        assert tmp_config.nginx_conf.read_text() == "events {\n}\n"

    def test_missing_nginx_conf(self, tmp_config: VbootConfig):
        with pytest.raises(NginxConfigError, match="Cannot read"):
            nginx_conf.harden(tmp_config, validate=MagicMock())

    def test_unwritable_conf_d(self, tmp_config: VbootConfig, minimal_conf: Path):
        tmp_config.conf_d_dir.rmdir()
        tmp_config.conf_d_dir.write_text("")
        with pytest.raises(NginxConfigError, match="auxiliary files"):
            nginx_conf.harden(tmp_config, validate=MagicMock())
        assert minimal_conf.read_text() == MINIMAL_NGINX_CONF
