"""Thin CLI wrapper for stemcell_manager.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stemcell_manager import __version__
from stemcell_manager.config import Settings, get_settings, print_settings_json

if TYPE_CHECKING:
    from stemcell_manager.stemcell.manager import StemcellManager

app = typer.Typer(
    name="stemcells",
    help="Stemcell Manager - upload, track, and clean up cloud stemcells",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"stemcell-manager version {__version__}")
        raise typer.Exit()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _build_manager(session: Session, settings: Settings) -> "StemcellManager":
    from stemcell_manager.cloud.cpi import CpiCloud
    from stemcell_manager.eventlog import EventLogger
    from stemcell_manager.records.repo import SqlStemcellRepo
    from stemcell_manager.stemcell.manager import StemcellManager

    cloud = CpiCloud(
        settings.cpi_path,
        context={"director_uuid": settings.director_uuid},
        timeout=settings.cpi_timeout,
    )
    return StemcellManager(SqlStemcellRepo(session), cloud, EventLogger(console))


def _require_cpi(settings: Settings) -> None:
    if settings.cpi_path is None:
        console.print(
            "[red]No CPI configured. "
            "Set STEMCELL_CPI_PATH to the CPI executable.[/red]"
        )
        raise typer.Exit(code=1)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Stemcell Manager - upload, track, and clean up cloud stemcells."""
    _configure_logging(get_settings().log_level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        cpi_display = str(settings.cpi_path) if settings.cpi_path else "(not set)"
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Record store:[/bold]")
        console.print(f"  Database URL:        {settings.db_url}")
        console.print()
        console.print("[bold]Cloud:[/bold]")
        console.print(f"  CPI path:            {cpi_display}")
        console.print(f"  CPI timeout:         {settings.cpi_timeout}")
        console.print(f"  Director UUID:       {settings.director_uuid}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")


@app.command("list")
def list_stemcells(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List recorded stemcells, marking the current one."""
    from stemcell_manager.db import get_session, init_record_store
    from stemcell_manager.records.repo import RecordStoreError, SqlStemcellRepo

    with get_session(init_record_store()) as session:
        repo = SqlStemcellRepo(session)
        try:
            records = repo.all()
            current = repo.find_current()
        except RecordStoreError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from None
        current_id = current.id if current is not None else None

        if not records:
            if json_output:
                console.print("[]")
            else:
                console.print("[yellow]No stemcells found[/yellow]")
            return

        if json_output:
            output = [
                {
                    "name": r.name,
                    "version": r.version,
                    "cid": r.cid,
                    "current": r.id == current_id,
                    "created_at": r.created_at.isoformat(),
                }
                for r in records
            ]
            console.print(json.dumps(output, indent=2))
        else:
            console.print(f"[bold]Found {len(records)} stemcell(s):[/bold]")
            console.print()
            for r in records:
                marker = " [green](current)[/green]" if r.id == current_id else ""
                console.print(f"  {r.name}/{r.version}{marker}")
                console.print(f"    CID: {r.cid}")


@app.command()
def current() -> None:
    """Show the current stemcell."""
    from stemcell_manager.db import get_session, init_record_store
    from stemcell_manager.stemcell.errors import StemcellError

    settings = get_settings()
    with get_session(init_record_store()) as session:
        manager = _build_manager(session, settings)
        try:
            stemcell = manager.find_current()
        except StemcellError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from None

        if stemcell is None:
            console.print("[yellow]No current stemcell[/yellow]")
            return
        console.print(f"[green]{stemcell.name}/{stemcell.version}[/green]")
        console.print(f"  CID: {stemcell.cid}")


@app.command("set-current")
def set_current(
    name: Annotated[str, typer.Argument(help="Stemcell name")],
    version: Annotated[str, typer.Argument(help="Stemcell version")],
) -> None:
    """Mark a recorded stemcell as the current one."""
    from stemcell_manager.db import get_session, init_record_store
    from stemcell_manager.records.repo import RecordStoreError, SqlStemcellRepo

    with get_session(init_record_store()) as session:
        repo = SqlStemcellRepo(session)
        try:
            record = repo.find(name, version)
            if record is None:
                console.print(f"[red]Stemcell not found: {name}/{version}[/red]")
                raise typer.Exit(code=1)
            repo.update_current(record.id)
        except RecordStoreError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from None
        console.print(f"[green]Current stemcell: {name}/{version}[/green]")


@app.command()
def upload(
    path: Annotated[str, typer.Argument(help="Path to an extracted stemcell")],
) -> None:
    """Upload an extracted stemcell unless it is already uploaded."""
    from stemcell_manager.db import get_session, init_record_store
    from stemcell_manager.stemcell.errors import StemcellError
    from stemcell_manager.stemcell.extracted import load_extracted_stemcell

    settings = get_settings()
    stemcell_dir = Path(path)
    if not stemcell_dir.is_dir():
        console.print(f"[red]Directory not found: {path}[/red]")
        raise typer.Exit(code=1)

    try:
        extracted = load_extracted_stemcell(stemcell_dir)
    except StemcellError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    _require_cpi(settings)

    failure: StemcellError | None = None
    try:
        with get_session(init_record_store()) as session:
            manager = _build_manager(session, settings)
            try:
                stemcell = manager.upload(extracted)
            except StemcellError as e:
                session.rollback()
                failure = e
    except SQLAlchemyError as e:
        console.print(f"[red]Database error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if failure is not None:
        console.print(f"[red]Upload failed: {escape(str(failure))}[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[green]✓ Stemcell {stemcell.identity} (cid={stemcell.cid})[/green]"
    )


@app.command()
def unused(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List stemcells that are not the current one."""
    from stemcell_manager.db import get_session, init_record_store
    from stemcell_manager.stemcell.errors import StemcellError

    settings = get_settings()
    with get_session(init_record_store()) as session:
        manager = _build_manager(session, settings)
        try:
            stemcells = manager.find_unused()
        except StemcellError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from None

        if json_output:
            output = [
                {"name": s.name, "version": s.version, "cid": s.cid}
                for s in stemcells
            ]
            console.print(json.dumps(output, indent=2))
        elif not stemcells:
            console.print("[yellow]No unused stemcells[/yellow]")
        else:
            console.print(f"[bold]Found {len(stemcells)} unused stemcell(s):[/bold]")
            for s in stemcells:
                console.print(f"  {s.name}/{s.version} (cid={s.cid})")


@app.command("delete-unused")
def delete_unused() -> None:
    """Delete every stemcell that is not the current one."""
    from stemcell_manager.db import get_session, init_record_store
    from stemcell_manager.stemcell.errors import StemcellError

    settings = get_settings()
    _require_cpi(settings)

    # The record store commits each delete, so earlier deletions survive a failure
    failure: StemcellError | None = None
    try:
        with get_session(init_record_store()) as session:
            manager = _build_manager(session, settings)
            stage = manager.event_logger.new_stage("deleting unused stemcells")
            stage.start()
            try:
                manager.delete_unused(stage)
            except StemcellError as e:
                session.rollback()
                failure = e
            else:
                stage.finish()
    except SQLAlchemyError as e:
        console.print(f"[red]Database error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if failure is not None:
        console.print(f"[red]Delete failed: {escape(str(failure))}[/red]")
        raise typer.Exit(code=1)


__all__ = ["app"]
