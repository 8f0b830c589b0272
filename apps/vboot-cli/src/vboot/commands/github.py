"""GitHub identity and token management (interactive)."""

from __future__ import annotations

import typer
from rich.table import Table

from vboot_common import GITHUB_HOST, CredentialEntry, VbootConfig

from vboot import output, prompts
from vboot.audit import audit
from vboot.config import get_config
from vboot.errors import InvalidCredentialError, VbootError
from vboot.menu import Menu, MenuItem
from vboot.services import credentials, git


def configure_identity() -> None:
    output.info("Configuring global git identity...")
    output.console.print(f"Current name : {git.get_global('user.name') or '<not set>'}")
    output.console.print(f"Current email: {git.get_global('user.email') or '<not set>'}")

    name = prompts.ask_nonempty("Enter git user.name  (e.g., John Doe)")
    email = prompts.ask_nonempty("Enter git user.email (e.g., you@example.com)")

    with audit("git.identity", target=email, name=name):
        git.set_global("user.name", name)
        git.set_global("user.email", email)
    output.success(f"Global git identity set to '{name}' <{email}>.")


def _ask_token() -> str:
    output.console.print("Token input options:")
    output.console.print("  1) Visible (easier to paste)")
    output.console.print("  2) Hidden (more secure)")
    visibility = prompts.ask("Choose option (1/2)", default="1")
    hidden = visibility.strip() == "2"
    while True:
        raw = prompts.ask(
            "Enter GitHub Personal Access Token" + (" (hidden)" if hidden else ""),
            default="",
            hide_input=hidden,
        )
        try:
            return credentials.parse_token(raw)
        except InvalidCredentialError as exc:
            output.warning(str(exc))


def add_or_update_token(cfg: VbootConfig | None = None) -> None:
    cfg = cfg or get_config()
    output.info("GitHub token configuration")
    output.console.print("How do you want to scope this token?")
    output.console.print(f"  1) Host-wide for all repos on {GITHUB_HOST}")
    output.console.print("  2) Specific repo (recommended per-project)")
    scope = prompts.ask("Choose option (1/2)", default="1").strip()

    username = prompts.ask_validated("Enter your GitHub username (for URL)", credentials.parse_username)
    token = _ask_token()

    path = None
    if scope == "2":
        output.info(f"Example repo URL: https://{GITHUB_HOST}/owner/repo.git")
        path = prompts.ask_validated(
            "Enter GitHub repo URL to scope this token to", credentials.parse_repo_url
        )

    entry = CredentialEntry(username=username, token=token, host=GITHUB_HOST, path=path)
    with audit("git.credential.upsert", target=entry.scope_url, username=username):
        store = credentials.load_store(cfg.credentials_path)
        store = credentials.upsert_credential(store, entry)
        credentials.save_store(store, cfg.credentials_path)

    output.success(f"Token stored for {entry.scope_url} (user: {username}).")
    output.warning(
        f"Remember: token is stored in plaintext in {cfg.credentials_path}. Use minimal scopes."
    )


def list_credentials(cfg: VbootConfig | None = None) -> None:
    cfg = cfg or get_config()
    if not cfg.credentials_path.exists():
        output.warning(f"No {cfg.credentials_path} file found.")
        return
    entries = credentials.list_credentials(credentials.load_store(cfg.credentials_path), GITHUB_HOST)
    if not entries:
        output.warning(f"No {GITHUB_HOST} entries found.")
        return

    table = Table(title="Stored GitHub credentials (token masked)")
    table.add_column("Username", style="cyan")
    table.add_column("Scope", style="yellow")
    table.add_column("Credential")
    for e in entries:
        table.add_row(e.username, e.path or "host-wide", e.to_line())
    output.console.print(table)


def remove_credentials(cfg: VbootConfig | None = None) -> None:
    cfg = cfg or get_config()
    if not cfg.credentials_path.exists():
        output.warning(f"No {cfg.credentials_path} file found.")
        return

    output.info("Remove GitHub credentials")
    list_credentials(cfg)
    user = prompts.ask_optional(
        "Enter GitHub username whose credentials you want to remove (or press Enter to cancel)"
    )
    if not user:
        output.info("Cancelled.")
        return

    with audit("git.credential.remove", target=GITHUB_HOST, username=user):
        store, removed = credentials.remove_credential(
            credentials.load_store(cfg.credentials_path), user, GITHUB_HOST
        )
        if removed:
            credentials.save_store(store, cfg.credentials_path)

    if removed:
        output.success(f"Removed credentials for user '{user}' on {GITHUB_HOST}.")
    else:
        output.warning(f"No credentials found for user '{user}' on {GITHUB_HOST}.")


def build_menu() -> Menu:
    return Menu(
        "GitHub Setup & Token Manager",
        [
            MenuItem("Configure git username/email", configure_identity),
            MenuItem("Add/Update GitHub token", add_or_update_token),
            MenuItem("List stored GitHub credentials", list_credentials),
            MenuItem("Remove GitHub credentials by username", remove_credentials),
        ],
    )


def github() -> None:
    """Configure git identity and GitHub access tokens."""
    try:
        if git.ensure_git():
            output.success("git installed.")
        else:
            output.success(f"git is already installed ({git.git_version()}).")
        if git.ensure_credential_store():
            output.info("Configured git credential helper to 'store' (plaintext in ~/.git-credentials).")
        else:
            output.success("Credential helper already includes 'store'.")
    except VbootError as exc:
        output.error(str(exc))
        raise typer.Exit(exc.exit_code)

    build_menu().run()
    output.info("Done. Bye.")
