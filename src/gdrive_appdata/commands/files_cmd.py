"""CLI commands for text files in appDataFolder."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Annotated, Awaitable, Callable, TypeVar

import typer
from rich.console import Console

from gdrive_appdata.app import AppData
from gdrive_appdata.config import get_settings
from gdrive_appdata.errors import AppDataError
from gdrive_appdata.services.appdata import AppDataService
from gdrive_appdata.utils.errors import handle_error
from gdrive_appdata.utils.output import OutputFormat, print_output

console = Console(stderr=True)
app = typer.Typer(name="files", help="Read and write text files in the app-private Drive folder.")

T = TypeVar("T")


def _run(action: Callable[[AppDataService], Awaitable[T]], verbose: bool = False) -> T:
    """Sign in, run one file operation, and shut the session down."""

    async def _main() -> T:
        async with AppData(get_settings(), verbose=verbose) as gd:
            await gd.sign_in()
            return await action(gd.files)

    try:
        return asyncio.run(_main())
    except (AppDataError, FileNotFoundError) as e:
        handle_error(e)
        raise typer.Exit(1)


@app.command("list")
def list_files(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show request details")] = False,
) -> None:
    """List files in appDataFolder."""
    files = _run(lambda svc: svc.list_files(), verbose)
    if not files:
        console.print("[dim]No files found.[/dim]")
        raise typer.Exit(0)
    rows = [f.model_dump(by_alias=True, mode="json") for f in files]
    print_output(rows, output, columns=["id", "name", "modifiedTime", "size"], title="appDataFolder")


@app.command("read")
def read_file(
    name: Annotated[str, typer.Argument(help="File name")],
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show request details")] = False,
) -> None:
    """Print a file's contents to stdout (empty if missing)."""
    sys.stdout.write(_run(lambda svc: svc.read_text_file(name), verbose))


@app.command("write")
def write_file(
    name: Annotated[str, typer.Argument(help="File name")],
    content: Annotated[str | None, typer.Option("--content", "-c", help="Text to write")] = None,
    source: Annotated[Path | None, typer.Option("--from", help="Read content from a local file")] = None,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show request details")] = False,
) -> None:
    """Create or overwrite a file."""
    if content is None and source is None:
        content = sys.stdin.read()
    elif source is not None:
        content = source.read_text()

    result = _run(lambda svc: svc.create_or_overwrite_text_file(name, content), verbose)
    print_output(result, output, title="Written")


@app.command("delete")
def delete_file(
    name: Annotated[str, typer.Argument(help="File name")],
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show request details")] = False,
) -> None:
    """Delete a file by name."""
    if not _run(lambda svc: svc.delete_file(name), verbose):
        console.print(f"[yellow]No file named {name}.[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted {name}.[/green]")
