"""CLI commands for session management."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from gdrive_appdata.app import AppData
from gdrive_appdata.config import get_settings
from gdrive_appdata.errors import AppDataError
from gdrive_appdata.utils.errors import handle_error
from gdrive_appdata.utils.output import OutputFormat, print_output

console = Console(stderr=True)
app = typer.Typer(name="auth", help="Sign in, inspect and revoke the Drive session.")


def _status_row(gd: AppData) -> dict[str, object]:
    status = gd.session.get_status()
    return {
        "state": status.state.value,
        "has_token": status.has_token,
        "expires_at": str(status.expires_at) if status.expires_at else "N/A",
        "seconds_remaining": status.seconds_remaining or 0,
    }


@app.command()
def login(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Sign in (silently if possible, otherwise interactively) and show token status."""

    async def _login() -> dict[str, object]:
        async with AppData(get_settings()) as gd:
            await gd.sign_in()
            return _status_row(gd)

    try:
        console.print("Signing in...", style="yellow")
        result = asyncio.run(_login())
        print_output(result, output, title="Authentication")
    except AppDataError as e:
        handle_error(e)
        raise typer.Exit(1)


@app.command()
def status(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Show whether a token can be obtained without user interaction."""

    async def _status() -> dict[str, object]:
        async with AppData(get_settings()) as gd:
            try:
                await gd.sign_in(allow_interactive=False)
            except AppDataError as e:
                console.print(f"[dim]Silent sign-in failed: {e}[/dim]")
            return _status_row(gd)

    print_output(asyncio.run(_status()), output, title="Token Status")


@app.command()
def logout() -> None:
    """Revoke the current token."""

    async def _logout() -> None:
        async with AppData(get_settings()) as gd:
            await gd.sign_in(allow_interactive=False)
            gd.session.sign_out()

    try:
        asyncio.run(_logout())
        console.print("[green]Signed out.[/green]")
    except AppDataError as e:
        handle_error(e)
        raise typer.Exit(1)
