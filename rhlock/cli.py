"""Command line entry points."""

import json
import logging
import subprocess
from pathlib import Path
from typing import Optional

import typer

from .config import load_config
from .guard import ReadOnlyGuard
from .models import LockStatus
from .reconciler import LockReconciler

log = logging.getLogger(__name__)

app = typer.Typer(help="Inspect editor locks on shared-drive documents.", no_args_is_help=True)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command("status")
def status_cmd(
    path: Path = typer.Argument(..., help="Document to check"),
    as_json: bool = typer.Option(False, "--json", help="Print the lock status as JSON"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to rhlock config file"),
) -> None:
    """Show who holds the lock on a document. Exits 1 if another user holds it."""
    cfg = load_config(str(config) if config else None)
    with LockReconciler.from_config(cfg) as reconciler:
        descriptor = reconciler.reconcile(path)

    if as_json:
        typer.echo(json.dumps(descriptor.to_dict(), indent=2))
    elif descriptor.status == LockStatus.FREE:
        typer.secho(f"{path}: not locked", fg=typer.colors.GREEN)
    else:
        color = typer.colors.YELLOW if descriptor.is_locked_by_current_actor else typer.colors.RED
        typer.secho(f"{path}: locked by {descriptor.display_description}", fg=color)
        if descriptor.registry_owner_email:
            typer.echo(f"  contact: {descriptor.registry_owner_email}")

    if descriptor.status == LockStatus.HELD_BY_OTHER:
        raise typer.Exit(code=1)


@app.command("open")
def open_cmd(
    path: Path = typer.Argument(..., help="Document to open"),
    editor: str = typer.Option(..., "--with", help="Editor executable to launch"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to rhlock config file"),
) -> None:
    """Open a document, read-only if another user holds the lock."""
    if not path.is_file():
        typer.secho("File not found.", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    cfg = load_config(str(config) if config else None)
    with LockReconciler.from_config(cfg) as reconciler:
        descriptor = reconciler.reconcile(path)

    if descriptor.should_open_read_only:
        typer.secho(
            f"File is locked by {descriptor.display_description}; opening read-only.",
            fg=typer.colors.YELLOW,
        )

    guard = ReadOnlyGuard.from_config(cfg)
    try:
        guard.open_with_protection(path, descriptor, lambda p: subprocess.Popen([editor, str(p)]))
    except OSError as e:
        typer.secho(f"Cannot launch {editor}: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=2)
    finally:
        guard.wait()
