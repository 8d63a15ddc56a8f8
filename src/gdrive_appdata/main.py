"""gdrive-appdata CLI entry point."""

from __future__ import annotations

import logging

import typer

from gdrive_appdata.commands.auth_cmd import app as auth_app
from gdrive_appdata.commands.files_cmd import app as files_app

app = typer.Typer(
    name="gdrive-appdata",
    help="Keep small text files in your app-private Google Drive folder.",
    no_args_is_help=True,
)

app.add_typer(auth_app, name="auth")
app.add_typer(files_app, name="files")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Google Drive appDataFolder client."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


if __name__ == "__main__":
    app()
