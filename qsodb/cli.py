"""Command-line interface for qsodb.

Commands cover creating the database, adding a callsign from QRZ, logging
contacts interactively, and listing what has been logged.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Allow running this file directly by ensuring the project root is on sys.path
if __package__ is None or __package__ == "":
    sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from qsodb.errors import CreationCancelled, DuplicateQso, QRZLookupError, SchemaMismatch
from qsodb.lookup import add_callsign, resolve_callsign_id
from qsodb.models import QSO, CallsignInfo, normalize_call, now_utc
from qsodb.qrz import USER_ENV_VAR, QRZClient
from qsodb.storage import APP_NAME, QSOStore

app = typer.Typer(add_completion=False, help=f"{APP_NAME} - QSO and callsign database")
console = Console()


# Utilities

def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _store(ctx: typer.Context) -> QSOStore:
    return ctx.obj["store"]


def _client(ctx: typer.Context) -> QRZClient:
    """Return the QRZ client, prompting for credentials the first time."""
    if ctx.obj.get("client") is None:
        console.print("Please provide login credentials for qrz.com")
        username = typer.prompt("Username", default=os.getenv(USER_ENV_VAR))
        password = typer.prompt("Password", hide_input=True)
        ctx.obj["client"] = QRZClient(username, password)
    return ctx.obj["client"]


def _fetcher(ctx: typer.Context):
    def fetch(call: str) -> CallsignInfo:
        return _client(ctx).fetch_callsign(call)

    return fetch


def _ask(label: str) -> Optional[str]:
    """Prompt for an optional value; blank input becomes None."""
    return typer.prompt(label, default="", show_default=False).strip() or None


def _ask_float(label: str) -> Optional[float]:
    while True:
        value = _ask(label)
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            console.print(f"[red]Not a number: {value}[/red]")


def _ask_confirmed() -> Optional[bool]:
    value = (_ask("QSO confirmed? [y/n]") or "").lower()
    if value in ("y", "yes"):
        return True
    if value in ("n", "no"):
        return False
    return None


def _prompt_qso(callsign_id: int) -> dict:
    """Collect one contact's fields from the terminal, keyed by qso column."""
    now = now_utc()
    return {
        "callsign_id": callsign_id,
        "date": typer.prompt("Date (YYYYMMDD)", default=now.strftime("%Y%m%d")),
        "time": typer.prompt("Time (HHMM)", default=now.strftime("%H%M")),
        "band": _ask("Band (e.g. 20m)"),
        "frequency": _ask_float("Frequency MHz"),
        "mode": _ask("Mode (e.g. SSB, CW)"),
        "rst_sent": _ask("RST sent"),
        "rst_received": _ask("RST received"),
        "comment": _ask("Comment"),
        "confirmed": _ask_confirmed(),
    }


@app.callback()
def main_callback(
    ctx: typer.Context,
    db_file: Optional[Path] = typer.Option(
        None, "--db-file", "-d", dir_okay=False, help="Database file (defaults to QSODB_PATH or the user data dir)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Maintain a database of QSOs and the callsigns worked."""
    _setup_logging(verbose)
    store = QSOStore(db_file)
    console.print(f"Using database file [bold]{store.path}[/bold]")
    ctx.obj = {"store": store, "client": None}


@app.command()
def create(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask when the file already exists"),
) -> None:
    """Create the callsign and qso tables (existing tables are kept)."""

    def confirm(path: Path) -> bool:
        return yes or typer.confirm(f"File {path} already exists; existing tables are kept. Proceed?")

    try:
        path = _store(ctx).create_schema(confirm=confirm)
        console.print(f"Database ready at: [bold]{path}[/bold]")
    except CreationCancelled:
        console.print("Database creation cancelled")
    except Exception as e:
        console.print(f"[red]Error creating database: {e}[/red]")
        raise typer.Exit(1) from e


@app.command("add-callsign")
def add_callsign_cmd(
    ctx: typer.Context,
    call: str = typer.Argument(..., help="Callsign to look up on QRZ, e.g. K1ABC"),
) -> None:
    """Look up a callsign on QRZ and add it to the callsign table."""
    call = normalize_call(call)
    console.print(f"Adding callsign info for {call}")
    try:
        callsign_id = add_callsign(_store(ctx), call, _fetcher(ctx))
        console.print(f"Saved {call} with id={callsign_id}")
    except Exception as e:
        console.print(f"[red]Error adding callsign: {e}[/red]")
        raise typer.Exit(1) from e


@app.command()
def log(ctx: typer.Context) -> None:
    """Log contacts interactively, looking up new callsigns on QRZ."""
    store = _store(ctx)
    fetch = _fetcher(ctx)
    while True:
        call = normalize_call(typer.prompt("Callsign"))
        try:
            callsign_id = resolve_callsign_id(store, call, fetch)
            operator = store.get_callsign_by_id(callsign_id)
            if operator is not None:
                name = " ".join(p for p in (operator.first_name, operator.name) if p)
                console.print(f"{operator.call}: {name or 'unknown operator'} {operator.grid_square or ''}".rstrip())
            fields = _prompt_qso(callsign_id)
            store.check_columns("qso", fields)
            qso_id = store.insert_qso(QSO(**fields))
            console.print(f"Saved QSO id={qso_id} with {call} at {fields['date']} {fields['time']}")
        except (DuplicateQso, QRZLookupError) as e:
            console.print(f"[red]{e}[/red]")
        except SchemaMismatch as e:
            console.print(f"[red]Aborting: {e}[/red]")
            raise typer.Exit(1) from e
        except Exception as e:
            console.print(f"[red]Error logging QSO: {e}[/red]")
            raise typer.Exit(1) from e
        if not typer.confirm("Log another QSO?", default=True):
            break


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    limit: int = typer.Option(20, min=1, max=1000, help="Max QSOs to show"),
    call: Optional[str] = typer.Option(None, help="Filter by callsign contains"),
) -> None:
    """Display recent QSOs in a table, optionally filtering by callsign substring."""
    store = _store(ctx)
    try:
        rows = store.list_qsos(limit=limit, call=call)
    except Exception as e:
        console.print(f"[red]Error listing QSOs: {e}[/red]")
        raise typer.Exit(1) from e
    if not rows:
        console.print("No QSOs found.")
        return
    table = Table(title=f"Recent QSOs (DB: {store.path})", show_lines=False)
    table.add_column("ID", justify="right")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Call")
    table.add_column("Band")
    table.add_column("Mode")
    table.add_column("Grid")
    table.add_column("Comment")
    for q, c in rows:
        table.add_row(
            str(q.qso_id or ""),
            q.date,
            q.time,
            c.call,
            q.band or "",
            q.mode or "",
            c.grid_square or "",
            (q.comment or "")[:40],
        )
    console.print(table)


def main() -> None:  # pragma: no cover - exercised via CLI
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
