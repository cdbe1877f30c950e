"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional, Tuple

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.appointment_file import open_book, save_appointments
from ..adapters.memory_store import InMemoryIntervalStore
from ..config import AppConfig, load_config
from ..domain.exceptions import ErrorKind, SchedulingError, StorageError
from ..services.scheduling import SchedulingService

app = typer.Typer(
    name="slotbook",
    help="Book non-overlapping appointments and find the next free slot",
    add_completion=False
)

console = Console()

# Exit codes per failure kind; 1 is reserved for unexpected errors
EXIT_CODES = {
    ErrorKind.INVALID_TIME_RANGE: 2,
    ErrorKind.APPOINTMENT_CONFLICT: 3,
    ErrorKind.INVALID_DURATION: 4,
    ErrorKind.NO_FREE_SLOT: 5,
}

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]
BookOption = Annotated[
    Optional[Path],
    typer.Option("--file", "-f", help="Appointment book file. Defaults to appointments_file from the config")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Book appointments and query free slots in an appointment book file.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    root = logging.getLogger()
    if root.level > logging.DEBUG:
        root.setLevel(config.log_level)
    return config


def _open_book(
    config: AppConfig,
    book_file: Optional[Path]
) -> Tuple[SchedulingService, InMemoryIntervalStore, Path]:
    path = book_file or config.appointments_file
    service, store = open_book(path, config.timezone)
    return service, store, path


def _parse_instant(value: str, tz: str, label: str) -> DateTime:
    try:
        parsed = pendulum.parse(value, tz=tz)
    except Exception as e:
        console.print(f"[red]Could not parse {label} '{value}': {e}[/red]")
        raise typer.Exit(1)

    if not isinstance(parsed, DateTime):
        console.print(f"[red]Could not parse {label} '{value}': not a date and time[/red]")
        raise typer.Exit(1)
    return parsed


def _fail(error: SchedulingError) -> typer.Exit:
    console.print(f"[bold red]{error.kind.value}:[/bold red] {error.message}")
    return typer.Exit(EXIT_CODES[error.kind])


@app.command()
def book(
    start: Annotated[str, typer.Argument(help="Start, ISO-8601 (e.g. 2025-01-10T09:00)")],
    end: Annotated[str, typer.Argument(help="End, ISO-8601 (e.g. 2025-01-10T09:30)")],
    description: Annotated[Optional[str], typer.Option("--description", "-m", help="Optional description")] = None,
    book_file: BookOption = None,
    config_file: ConfigOption = None,
    save: Annotated[bool, typer.Option("--save", help="Write the booking back to the appointment book.")] = False,
):
    """
    Book a new appointment if it does not overlap an existing one.

    Examples:

        slotbook book 2025-01-10T09:00 2025-01-10T09:30 -m "Intake" --save
    """
    config = _load_config(config_file)
    tz = config.timezone

    start_at = _parse_instant(start, tz, "start")
    end_at = _parse_instant(end, tz, "end")

    try:
        service, store, path = _open_book(config, book_file)
        appointment = service.create_appointment(start_at, end_at, description)
        if save:
            save_appointments(path, store)
    except SchedulingError as e:
        raise _fail(e)
    except StorageError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold green]✓ Booked:[/bold green] {appointment}")
    minutes = int(appointment.duration.total_seconds() // 60)
    console.print(f"  [dim]{appointment.id} ({minutes} min)[/dim]")
    if not save:
        console.print("[yellow]Not saved (use --save to write the appointment book).[/yellow]")


@app.command("next-slot")
def next_slot(
    from_: Annotated[Optional[str], typer.Option("--from", help="Search start, ISO-8601. Defaults to now.")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Slot duration in minutes")] = None,
    until: Annotated[Optional[str], typer.Option("--until", help="Search horizon, ISO-8601")] = None,
    book_file: BookOption = None,
    config_file: ConfigOption = None,
):
    """
    Find the earliest free slot of the requested duration.

    Examples:

        slotbook next-slot --from 2025-01-10T09:00 -d 45
        slotbook next-slot -d 60 --until 2025-01-10T17:00
    """
    config = _load_config(config_file)
    tz = config.timezone

    search_from = _parse_instant(from_, tz, "--from") if from_ else pendulum.now(tz)
    if until:
        search_until = _parse_instant(until, tz, "--until")
    elif config.defaults.search_horizon_days:
        search_until = search_from.add(days=config.defaults.search_horizon_days)
    else:
        search_until = None
    minutes = duration if duration is not None else config.defaults.duration_minutes

    try:
        service, _, _ = _open_book(config, book_file)
        slot = service.find_next_free_slot(
            search_from,
            pendulum.duration(minutes=minutes),
            search_until,
        )
    except SchedulingError as e:
        raise _fail(e)
    except StorageError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    slot_end = slot.add(minutes=minutes)
    console.print(
        f"[bold green]✓ Next free slot:[/bold green] "
        f"{slot.format('DD.MM.YYYY HH:mm')} - {slot_end.format('HH:mm')} ({minutes} min)"
    )
    console.print(f"  [dim]{slot.to_iso8601_string()}[/dim]")


@app.command("list")
def list_appointments(
    book_file: BookOption = None,
    config_file: ConfigOption = None,
):
    """
    List all booked appointments in start order.
    """
    config = _load_config(config_file)

    try:
        _, store, path = _open_book(config, book_file)
    except SchedulingError as e:
        raise _fail(e)
    except StorageError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    appointments = list(store)
    if not appointments:
        console.print(f"[yellow]No appointments in {path}.[/yellow]")
        return

    table = Table(
        title=f"Appointments ({path})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Start", style="bold yellow")
    table.add_column("End")
    table.add_column("Description")
    table.add_column("ID", style="dim")

    for appointment in appointments:
        table.add_row(
            appointment.start.format("DD.MM.YYYY HH:mm"),
            appointment.end.format("DD.MM.YYYY HH:mm"),
            appointment.description or "",
            str(appointment.id)[:8],
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
