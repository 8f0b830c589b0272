"""Root Typer application for the vboot CLI."""

from __future__ import annotations

import typer

from vboot.commands import github, nginx

app = typer.Typer(
    name="vboot",
    help="VPS bootstrap: git/GitHub credentials and a hardened nginx.",
    no_args_is_help=True,
)

app.add_typer(nginx.app, name="nginx", help="Install nginx, or manage an existing installation.")
app.command(name="github")(github.github)

if __name__ == "__main__":
    app()
