"""NGINX installation, hardening and management (interactive)."""

from __future__ import annotations

import os
import shlex
from datetime import datetime
from pathlib import Path

import typer
from rich.syntax import Syntax
from rich.table import Table

from vboot_common import Outcome, ReconciliationResult, SiteConfig, VbootConfig, is_valid_domain

from vboot import output, prompts
from vboot.audit import audit, record_reconciliation
from vboot.config import get_config
from vboot.errors import CertbotError, NginxConfigError, VbootError
from vboot.menu import Menu, MenuItem
from vboot.services import certbot, firewall, nginx, nginx_conf, sites, system

app = typer.Typer(invoke_without_command=True)


# ---------------------------------------------------------------------------
# Shared steps
# ---------------------------------------------------------------------------


def check_preconditions() -> str:
    """Root + supported distribution. Returns the OS pretty name."""
    system.require_root()
    output.success("Running with root privileges")
    pretty = system.detect_os()
    output.success(f"Detected OS: {pretty}")
    return pretty


def report_reconciliation(result: ReconciliationResult) -> None:
    table = Table(title="nginx.conf directives")
    table.add_column("Directive", style="cyan")
    table.add_column("Outcome")
    styles = {
        Outcome.INSERTED: "green",
        Outcome.REPLACED: "yellow",
        Outcome.REMOVED: "red",
        Outcome.UNCHANGED: "dim",
    }
    for o in result.outcomes:
        style = styles[o.outcome]
        table.add_row(o.name, f"[{style}]{o.outcome.value}[/{style}]")
    output.console.print(table)


def apply_hardening(cfg: VbootConfig | None = None) -> ReconciliationResult:
    """Security headers, rate limiting, server tokens, workers and gzip."""
    cfg = cfg or get_config()
    output.info("Applying security hardening and performance tuning...")
    if nginx_conf.has_conf_d_wildcard(nginx_conf.read_config(cfg.nginx_conf)):
        output.info("Wildcard include for conf.d/*.conf detected. Auxiliary files will be auto-included.")

    with audit("nginx.harden", target=str(cfg.nginx_conf)) as event:
        result = nginx_conf.harden(cfg, validate=nginx.test_config)
        record_reconciliation(event, result)

    report_reconciliation(result)
    if result.changed:
        output.success("nginx.conf hardened and validated")
    else:
        output.success("nginx.conf already hardened, nothing to change")
    return result


def reload_nginx() -> None:
    nginx.reload()
    output.success("Nginx configuration reloaded")


def setup_ssl(cfg: VbootConfig, domain: str) -> bool:
    """Obtain a certificate. Failure is a warning: the site keeps serving HTTP."""
    output.info(f"Setting up SSL certificate for {domain}...")
    if certbot.ensure_installed():
        output.success("Certbot installed")
    else:
        output.info("Certbot already installed")

    output.info("Obtaining SSL certificate from Let's Encrypt...")
    try:
        with audit("cert.issue", target=domain):
            certbot.issue_cert(domain, include_www=True, email=cfg.certbot_email)
    except CertbotError as exc:
        output.log.warning(str(exc))
        output.warning(
            f"SSL certificate setup failed. You can run 'certbot --nginx -d {domain}' manually later."
        )
        output.info("Make sure your domain DNS points to this server before obtaining a certificate.")
        return False

    output.success("SSL certificate obtained and configured")
    if certbot.renew_dry_run():
        output.success("Automatic renewal test passed")
    else:
        output.warning("Automatic renewal test failed, but certificate is installed")
    return True


def add_site(cfg: VbootConfig, *, ask_ssl: bool = True) -> SiteConfig | None:
    """Prompt for a domain and document root, provision it and reload nginx."""
    domain = prompts.ask_domain()
    if sites.site_exists(cfg, domain):
        output.warning(f"Site configuration for {domain} already exists.")
        if not prompts.confirm("Do you want to overwrite it?"):
            output.info("Operation cancelled.")
            return None

    root = prompts.ask_path("Enter document root path", cfg.default_document_root(domain))
    site = SiteConfig(domain=domain, document_root=root, log_dir=cfg.nginx_log_dir)

    with audit("site.add", target=domain, document_root=str(root)):
        output.info(f"Creating document root: {root}")
        sites.provision_site(site, cfg)
        output.success("Site configuration created and enabled")
        try:
            reload_nginx()
        except NginxConfigError:
            sites.disable_site(cfg, domain)
            output.error("Site configuration test failed; site disabled again")
            raise

    if not ask_ssl or prompts.confirm(f"Do you want to set up SSL certificate for {domain}?"):
        setup_ssl(cfg, domain)
    return site


# ---------------------------------------------------------------------------
# Installation mode
# ---------------------------------------------------------------------------


def display_system_info() -> None:
    output.info("Gathering system information...")
    table = Table(show_header=False)
    for key, value in system.system_info().items():
        table.add_row(key, value)
    output.console.print(table)


def update_system() -> None:
    output.info("Updating package lists...")
    system.apt_update()
    output.success("Package lists updated")
    output.info("Upgrading existing packages...")
    system.apt_upgrade()
    output.success("System packages upgraded")


def install_nginx() -> None:
    output.info("Installing nginx...")
    system.apt_install("nginx")
    ver = nginx.version()
    if ver is None:
        raise VbootError("Nginx installation verification failed")
    output.success(f"Nginx version {ver} verified")


def configure_firewall() -> None:
    if not firewall.installed():
        output.warning("UFW is not installed. Skipping firewall configuration.")
        return
    if firewall.is_active():
        if prompts.confirm("Do you want to configure firewall rules? (Allow HTTP/HTTPS)"):
            output.info("Configuring UFW to allow HTTP (port 80) and HTTPS (port 443)...")
            with audit("firewall.allow", target=firewall.NGINX_PROFILE):
                firewall.allow_nginx()
            output.success("Firewall rules configured")
        else:
            output.warning("Firewall configuration skipped")
    else:
        output.warning("UFW is not active. Skipping firewall configuration.")
    output.info("Current firewall status:")
    output.console.print(firewall.status())


def start_service() -> None:
    output.info("Managing nginx service...")
    nginx.test_config()
    output.success("Nginx configuration test passed")
    nginx.start()
    nginx.enable()
    output.success("Nginx service started and enabled")
    if not nginx.is_running():
        raise VbootError("Nginx failed to start")
    output.success("Nginx is running")


def setup_site(cfg: VbootConfig) -> None:
    if not prompts.confirm("Do you want to set up a website?"):
        output.info("Site setup skipped")
        return
    try:
        add_site(cfg, ask_ssl=False)
    except NginxConfigError as exc:
        output.error(str(exc))


def post_installation_summary(cfg: VbootConfig) -> None:
    output.rule("Nginx Installation Complete!")
    output.info("Nginx Status:")
    output.console.print("\n".join(nginx.status().splitlines()[:10]))
    output.info(f"Nginx Version: {nginx.version() or 'unknown'}")
    output.info("Active Sites:")
    for name in sites.list_enabled(cfg) or ["No sites enabled"]:
        output.console.print(f"  {name}")

    output.info("Useful Commands:")
    for line in [
        "Check nginx status: systemctl status nginx",
        "Test configuration: nginx -t",
        "Reload nginx: systemctl reload nginx",
        "Restart nginx: systemctl restart nginx",
        f"View error log: tail -f {cfg.nginx_log_dir / 'error.log'}",
        f"View access log: tail -f {cfg.nginx_log_dir / 'access.log'}",
        "Renew SSL certificate: certbot renew",
        "Re-apply hardening: vboot nginx harden",
    ]:
        output.console.print(f"  - {line}")

    output.info("Configuration Files:")
    for label, path in [
        ("Main config", cfg.nginx_conf),
        ("Site configs", cfg.sites_available_dir),
        ("Enabled sites", cfg.sites_enabled_dir),
        ("Security headers", cfg.security_headers_conf),
        ("Rate limiting", cfg.rate_limit_conf),
    ]:
        output.console.print(f"  - {label}: {path}")
    output.info(f"Installation log saved to: {cfg.install_log}")


def run_installation(cfg: VbootConfig) -> None:
    output.rule("Nginx Installation")
    output.log.info("Installation started at %s", datetime.now().isoformat(timespec="seconds"))
    with audit("nginx.install", target=cfg.host_id):
        display_system_info()
        update_system()
        install_nginx()
        configure_firewall()
        apply_hardening(cfg)
        start_service()
    setup_site(cfg)
    post_installation_summary(cfg)
    output.log.info("Installation completed at %s", datetime.now().isoformat(timespec="seconds"))
    output.success("All done! Nginx is ready to use.")


# ---------------------------------------------------------------------------
# Management mode
# ---------------------------------------------------------------------------


def _show_file(path: Path, lexer: str = "nginx") -> None:
    if not path.exists():
        output.warning(f"{path} not found")
        return
    output.console.print(Syntax(path.read_text(), lexer, theme="monokai", line_numbers=True))


def _edit_file(path: Path) -> None:
    editor = shlex.split(os.environ.get("EDITOR") or "nano")
    system.run([*editor, str(path)], capture=False, check=False)


def _pick_site(cfg: VbootConfig) -> str | None:
    available = [domain for domain, _ in sites.list_sites(cfg)]
    if not available:
        output.warning("No sites available")
        return None
    idx = prompts.choose("Select site number", available)
    if idx is None:
        output.error("Invalid selection.")
        return None
    return available[idx]


def remove_site(cfg: VbootConfig | None = None) -> None:
    cfg = cfg or get_config()
    output.info("Remove/Disable Site")
    available = sites.list_sites(cfg)
    if not available:
        output.warning("No sites available to remove.")
        return

    idx = prompts.choose(
        "Select site number to remove/disable",
        [f"{domain} [{'ENABLED' if enabled else 'DISABLED'}]" for domain, enabled in available],
    )
    if idx is None:
        output.error("Invalid selection.")
        return
    domain = available[idx][0]

    output.console.print(f"Options for {domain}:")
    option = prompts.choose(
        "Choose option (1-3)",
        ["Disable (remove symlink, keep config)", "Delete (remove config file and symlink)", "Cancel"],
    )
    if option == 0:
        with audit("site.disable", target=domain):
            disabled = sites.disable_site(cfg, domain)
        if disabled:
            output.success(f"Site {domain} disabled")
        else:
            output.warning("Site is already disabled")
    elif option == 1:
        with audit("site.delete", target=domain):
            doc_root = sites.delete_site(cfg, domain)
        output.success(f"Site {domain} deleted")
        if doc_root is not None and doc_root.is_dir():
            if prompts.confirm(f"Do you want to remove document root ({doc_root})?"):
                sites.remove_document_root(doc_root)
                output.success("Document root removed")
    elif option == 2:
        output.info("Operation cancelled")
        return
    else:
        output.error("Invalid option")
        return

    reload_nginx()


def ssl_menu(cfg: VbootConfig) -> Menu:
    def list_all() -> None:
        output.info("Listing all certificates:")
        output.console.print(certbot.list_certs())

    def renew_one() -> None:
        output.console.print(certbot.list_certs())
        name = prompts.ask_nonempty("Enter domain name to renew")
        with audit("cert.renew", target=name):
            output.console.print(certbot.renew_cert(name))
        reload_nginx()

    def renew_all() -> None:
        output.info("Renewing all certificates...")
        with audit("cert.renew"):
            output.console.print(certbot.renew())
        reload_nginx()
        output.success("All certificates renewed")

    def add_cert() -> None:
        domain = prompts.ask_optional("Enter domain name")
        if not is_valid_domain(domain):
            output.error("Invalid domain name")
            return
        setup_ssl(cfg, domain)

    def expiry() -> None:
        table = Table(title="Certificate expiration dates")
        table.add_column("Certificate", style="cyan")
        table.add_column("Expiry Date", style="yellow")
        for name, date in certbot.parse_expiry(certbot.list_certs()):
            table.add_row(name, date)
        output.console.print(table)

    def dry_run() -> None:
        output.info("Testing certificate renewal (dry-run)...")
        if certbot.renew_dry_run():
            output.success("Renewal dry-run passed")
        else:
            output.warning("Renewal dry-run failed")

    return Menu(
        "SSL Certificate Management",
        [
            MenuItem("List all certificates", list_all),
            MenuItem("Renew specific certificate", renew_one),
            MenuItem("Renew all certificates", renew_all),
            MenuItem("Add certificate for existing site", add_cert),
            MenuItem("Check certificate expiration", expiry),
            MenuItem("Test certificate renewal (dry-run)", dry_run),
        ],
        exit_label="Back to main menu",
    )


def config_menu(cfg: VbootConfig) -> Menu:
    def view_site() -> None:
        domain = _pick_site(cfg)
        if domain:
            _show_file(sites.site_config_path(cfg, domain))

    def edit_and_reload(path: Path) -> None:
        _edit_file(path)
        try:
            reload_nginx()
        except NginxConfigError as exc:
            output.error(f"{exc}\nConfiguration test failed. Please fix errors.")

    def edit_main() -> None:
        backup = nginx_conf.backup_config(cfg.nginx_conf)
        if backup:
            output.success(f"Configuration backed up to {backup}")
        edit_and_reload(cfg.nginx_conf)

    def edit_site() -> None:
        domain = _pick_site(cfg)
        if domain:
            edit_and_reload(sites.site_config_path(cfg, domain))

    def backup() -> None:
        path = nginx_conf.backup_config(cfg.nginx_conf)
        if path:
            output.success(f"Configuration backed up to {path}")
        else:
            output.warning(f"{cfg.nginx_conf} not found")

    return Menu(
        "Edit/View Configurations",
        [
            MenuItem("View main nginx configuration", lambda: _show_file(cfg.nginx_conf)),
            MenuItem("View specific site configuration", view_site),
            MenuItem("Edit main nginx configuration", edit_main),
            MenuItem("Edit site configuration", edit_site),
            MenuItem("View security headers configuration", lambda: _show_file(cfg.security_headers_conf)),
            MenuItem("View rate limiting configuration", lambda: _show_file(cfg.rate_limit_conf)),
            MenuItem("Backup configuration", backup),
        ],
        exit_label="Back to main menu",
    )


def status_menu(cfg: VbootConfig) -> Menu:
    def follow(path: Path) -> None:
        output.info(f"Viewing {path} (Ctrl+C to exit)...")
        try:
            system.run(["tail", "-f", str(path)], capture=False, check=False)
        except KeyboardInterrupt:
            output.console.print()

    def enabled_sites() -> None:
        output.info("Enabled sites:")
        for name in sites.list_enabled(cfg):
            output.console.print(f"  {name}")

    def install_log() -> None:
        if cfg.install_log.exists():
            output.console.print(cfg.install_log.read_text())
        else:
            output.warning("Installation log not found")

    def connections() -> None:
        result = system.run(
            ["ss", "-Htn", "state", "established", "( sport = :80 or sport = :443 )"],
            check=False,
        )
        count = len([line for line in result.stdout.splitlines() if line.strip()])
        output.info(f"Active connections on ports 80/443: {count}")

    def processes() -> None:
        result = system.run(["ps", "-C", "nginx", "-o", "pid,user,%cpu,%mem,cmd"], check=False)
        output.console.print(result.stdout)

    return Menu(
        "View Status and Logs",
        [
            MenuItem("Nginx service status", lambda: output.console.print(nginx.status())),
            MenuItem("Nginx version", lambda: output.info(f"Nginx version: {nginx.version()}")),
            MenuItem("List enabled sites", enabled_sites),
            MenuItem("View error log (real-time)", lambda: follow(cfg.nginx_log_dir / "error.log")),
            MenuItem("View access log (real-time)", lambda: follow(cfg.nginx_log_dir / "access.log")),
            MenuItem("View installation log", install_log),
            MenuItem("Show active connections", connections),
            MenuItem("Show nginx process information", processes),
        ],
        exit_label="Back to main menu",
    )


def firewall_menu() -> Menu:
    def allow() -> None:
        with audit("firewall.allow", target=firewall.NGINX_PROFILE):
            firewall.allow_nginx()
        output.success("Firewall rules added")

    def delete() -> None:
        with audit("firewall.delete", target=firewall.NGINX_PROFILE):
            firewall.delete_nginx()
        output.success("Firewall rules removed")

    def check_ports() -> None:
        if firewall.web_ports_open():
            output.success("Ports 80/443 are open")
        else:
            output.warning("Ports 80/443 are not open")

    return Menu(
        "Manage Firewall Rules",
        [
            MenuItem("View firewall status", lambda: output.console.print(firewall.status(verbose=True))),
            MenuItem("Allow HTTP/HTTPS (ports 80/443)", allow),
            MenuItem("Remove HTTP/HTTPS rules", delete),
            MenuItem("Check if ports 80/443 are open", check_ports),
        ],
        exit_label="Back to main menu",
    )


def service_menu() -> Menu:
    def run_action(action: str, func, message: str) -> None:
        with audit(f"nginx.{action}"):
            func()
        output.success(message)

    def test() -> None:
        nginx.test_config()
        output.success("Configuration test passed")

    return Menu(
        "Reload/Restart Service",
        [
            MenuItem("Test nginx configuration", test),
            MenuItem("Reload nginx (graceful)", lambda: run_action("reload", nginx.reload, "Nginx reloaded")),
            MenuItem("Restart nginx (full restart)", lambda: run_action("restart", nginx.restart, "Nginx restarted")),
            MenuItem("Stop nginx", lambda: run_action("stop", nginx.stop, "Nginx stopped")),
            MenuItem("Start nginx", lambda: run_action("start", nginx.start, "Nginx started")),
            MenuItem("Enable nginx on boot", lambda: run_action("enable", nginx.enable, "Nginx enabled on boot")),
            MenuItem("Disable nginx on boot", lambda: run_action("disable", nginx.disable, "Nginx disabled on boot")),
        ],
        exit_label="Back to main menu",
    )


def _firewall_submenu() -> None:
    if not firewall.installed():
        output.warning("UFW is not installed.")
        return
    firewall_menu().run(once=True)


def management_menu(cfg: VbootConfig) -> Menu:
    return Menu(
        "Nginx Management Menu",
        [
            MenuItem("Add New Site", lambda: add_site(cfg)),
            MenuItem("Remove/Disable Site", lambda: remove_site(cfg)),
            MenuItem("Manage SSL Certificates", lambda: ssl_menu(cfg).run(once=True)),
            MenuItem("Edit/View Configurations", lambda: config_menu(cfg).run(once=True)),
            MenuItem("View Status and Logs", lambda: status_menu(cfg).run(once=True)),
            MenuItem("Manage Firewall Rules", _firewall_submenu),
            MenuItem("Reload/Restart Service", lambda: service_menu().run(once=True)),
            MenuItem("Re-apply Security Hardening", lambda: apply_hardening(cfg)),
        ],
        pause_after=True,
    )


def run_management_mode(cfg: VbootConfig) -> None:
    output.rule(f"Nginx Management Mode (version {nginx.version() or 'unknown'})")
    output.log.info("Management started at %s", datetime.now().isoformat(timespec="seconds"))
    management_menu(cfg).run()
    output.info("Exiting management mode. Goodbye!")


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


@app.callback()
def main(ctx: typer.Context) -> None:
    """Install nginx, or manage an existing installation."""
    cfg = get_config()
    output.setup_logging(cfg.install_log)
    try:
        check_preconditions()
        if ctx.invoked_subcommand is not None:
            return
        if nginx.installed():
            run_management_mode(cfg)
        else:
            run_installation(cfg)
    except VbootError as exc:
        output.error(str(exc))
        output.error(f"Check {cfg.install_log} for details.")
        raise typer.Exit(exc.exit_code)


@app.command()
def harden() -> None:
    """Re-apply hardening and performance directives to nginx.conf, then reload."""
    cfg = get_config()
    try:
        result = apply_hardening(cfg)
        if result.changed and nginx.is_running():
            reload_nginx()
    except VbootError as exc:
        output.error(str(exc))
        raise typer.Exit(exc.exit_code)
