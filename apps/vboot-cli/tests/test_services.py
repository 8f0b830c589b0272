"""Tests for subprocess-backed service wrappers."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from vboot.errors import CommandError, CertbotError, NginxConfigError, PreconditionError
from vboot.services import certbot, firewall, git, nginx, system


def _done(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestSystem:
    def test_require_root(self):
        system.require_root(euid=0)
        with pytest.raises(PreconditionError) as exc_info:
            system.require_root(euid=1000)
        assert exc_info.value.exit_code == 1

    def test_detect_ubuntu(self, tmp_path: Path):
        release = tmp_path / "os-release"
        release.write_text('NAME="Ubuntu"\nID=ubuntu\nPRETTY_NAME="Ubuntu 24.04 LTS"\n')
        assert system.detect_os(release) == "Ubuntu 24.04 LTS"

    def test_detect_unsupported(self, tmp_path: Path):
        release = tmp_path / "os-release"
        release.write_text("ID=fedora\n")
        with pytest.raises(PreconditionError, match="fedora"):
            system.detect_os(release)

    def test_detect_missing(self, tmp_path: Path):
        with pytest.raises(PreconditionError):
            system.detect_os(tmp_path / "missing")

    def test_run_wraps_failures(self):
        with patch("subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(CommandError, match="not found"):
                system.run(["nope"])
        err = subprocess.CalledProcessError(2, ["apt-get"], stderr="boom")
        with patch("subprocess.run", side_effect=err):
            with pytest.raises(CommandError, match="boom"):
                system.run(["apt-get", "update"])


class TestNginx:
    def test_version(self):
        with patch.object(system, "which", return_value="/usr/sbin/nginx"), \
             patch.object(system, "run", return_value=_done(stderr="nginx version: nginx/1.24.0 (Ubuntu)\n")):
            assert nginx.version() == "1.24.0"

    def test_version_not_installed(self):
        with patch.object(system, "which", return_value=None):
            assert nginx.version() is None

    def test_config_ok(self):
        with patch.object(system, "run", return_value=_done(stderr="syntax is ok")):
            assert "syntax is ok" in nginx.test_config()

    def test_config_failure(self):
        with patch.object(system, "run", return_value=_done(1, stderr="[emerg] bad")):
            with pytest.raises(NginxConfigError, match="emerg"):
                nginx.test_config()

    def test_reload_tests_first(self):
        with patch.object(system, "run", return_value=_done(1, stderr="[emerg] bad")), \
             patch.object(system, "systemctl") as systemctl:
            with pytest.raises(NginxConfigError):
                nginx.reload()
            systemctl.assert_not_called()


class TestCertbot:
    def test_obtain_command_with_email(self):
        cmd = certbot.obtain_command("example.com", email="ops@example.com")
        assert cmd == [
            "certbot", "--nginx", "-d", "example.com", "-d", "www.example.com",
            "--non-interactive", "--agree-tos",
            "--email", "ops@example.com", "--no-eff-email", "--redirect",
        ]

    def test_obtain_command_without_email(self):
        cmd = certbot.obtain_command("api.example.com", include_www=False)
        assert "--register-unsafely-without-email" in cmd
        assert "www.api.example.com" not in cmd

    def test_issue_failure(self):
        with patch.object(system, "run", return_value=_done(1, stderr="DNS problem")):
            with pytest.raises(CertbotError, match="DNS problem"):
                certbot.issue_cert("example.com")

    def test_parse_expiry(self):
        out = (
            "Found the following certs:\n"
            "  Certificate Name: example.com\n"
            "    Domains: example.com www.example.com\n"
            "    Expiry Date: 2025-01-01 00:00:00+00:00 (VALID: 80 days)\n"
            "  Certificate Name: other.org\n"
            "    Expiry Date: 2025-02-01 00:00:00+00:00 (VALID: 100 days)\n"
        )
        assert certbot.parse_expiry(out) == [
            ("example.com", "2025-01-01 00:00:00+00:00 (VALID: 80 days)"),
            ("other.org", "2025-02-01 00:00:00+00:00 (VALID: 100 days)"),
        ]


class TestFirewall:
    def test_web_ports_open(self):
        assert firewall.web_ports_open("Status: active\nNginx Full  ALLOW  Anywhere\n")
        assert firewall.web_ports_open("Status: active\n443/tcp  ALLOW  Anywhere\n")
        assert not firewall.web_ports_open("Status: active\n22/tcp  ALLOW  Anywhere\n")

    def test_is_active(self):
        with patch.object(system, "run", return_value=_done(stdout="Status: active\n")):
            assert firewall.is_active()
        with patch.object(system, "run", return_value=_done(stdout="Status: inactive\n")):
            assert not firewall.is_active()


class TestGit:
    def test_credential_store_already_set(self):
        with patch.object(git, "get_global", return_value="store"), \
             patch.object(git, "set_global") as set_global:
            assert git.ensure_credential_store() is False
            set_global.assert_not_called()

    def test_credential_store_configured(self):
        with patch.object(git, "get_global", return_value=None), \
             patch.object(git, "set_global") as set_global:
            assert git.ensure_credential_store() is True
            set_global.assert_called_once_with("credential.helper", "store")

    def test_ensure_git_needs_root(self):
        def which(tool):
            return "/usr/bin/apt-get" if tool == "apt-get" else None

        with patch.object(system, "which", side_effect=which):
            with pytest.raises(PreconditionError):
                git.ensure_git(euid=1000)

    def test_ensure_git_present(self):
        with patch.object(system, "which", return_value="/usr/bin/git"):
            assert git.ensure_git() is False
