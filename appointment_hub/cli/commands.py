"""CLI commands for AppointmentHub."""

import asyncio
from datetime import date, datetime
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from appointment_hub.config import get_settings

app = typer.Typer(
    name="appointment-hub",
    help="Appointment slots, bookings and reschedule confirmations",
    add_completion=False,
)
console = Console()


def get_appointment_store():
    """Get the configured SQL appointment store."""
    from appointment_hub.core.database import get_session_factory
    from appointment_hub.core.repository import SqlAppointmentStore

    return SqlAppointmentStore(get_session_factory())


def get_availability_store():
    """Get the configured SQL availability store."""
    from appointment_hub.core.database import get_session_factory
    from appointment_hub.core.repository import SqlAvailabilityStore

    return SqlAvailabilityStore(get_session_factory())


async def _load_provider(provider_id: str):
    """Read the provider's appointments and blocks, then release the engine."""
    from appointment_hub.core.database import dispose_engine

    try:
        snapshot = await get_appointment_store().fetch_appointments(provider_id)
        blocks = await get_availability_store().list_blocks(provider_id)
        return snapshot, blocks
    finally:
        await dispose_engine()


def _parse_date(value: Optional[str], name: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        console.print(f"[red]Invalid {name}: {value}. Use YYYY-MM-DD[/red]")
        raise typer.Exit(1)


@app.command()
def slots(
    provider_id: str = typer.Argument(..., help="Provider identifier"),
    reference: Optional[str] = typer.Option(
        None, "--from", "-f", help="Reference date (YYYY-MM-DD), defaults to today"
    ),
    day: Optional[str] = typer.Option(
        None, "--date", "-d", help="List free times on one date (YYYY-MM-DD)"
    ),
):
    """Show a provider's availability over the booking horizon."""
    from appointment_hub.scheduling.slots import SlotGenerator

    reference_date = _parse_date(reference, "reference date") or date.today()
    selected = _parse_date(day, "date")

    try:
        snapshot, blocks = asyncio.run(_load_provider(provider_id))
    except Exception as e:
        console.print(f"[red]Could not load appointments: {e}[/red]")
        console.print("Run 'appointment-hub init-db' to create the tables.")
        raise typer.Exit(1)

    view = SlotGenerator.from_settings().view(
        reference_date, provider_id, snapshot, blocks=blocks
    )

    if selected is not None:
        times = view.times_for_date(selected)
        if not times:
            console.print(f"[yellow]No free slots on {selected.isoformat()}[/yellow]")
            return
        console.print(
            Panel(", ".join(times), title=f"{provider_id} · {selected.isoformat()}", border_style="green")
        )
        return

    table = Table(title=f"Availability for {provider_id}")
    table.add_column("Date", style="cyan")
    table.add_column("Day")
    table.add_column("Free", justify="right")
    table.add_column("First free")

    for d in view.days:
        free = [s.time for s in d.slots if s.available]
        table.add_row(
            d.date.isoformat(),
            d.day_of_week,
            f"{len(free)}/{len(d.slots)}",
            free[0] if free else "-",
        )

    console.print(table)
    console.print(f"\n[bold]Total available:[/bold] {view.total_available()}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """Start the REST API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print(f"Starting AppointmentHub API server on {host}:{port}")
    uvicorn.run(
        "appointment_hub.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def init_db():
    """Create the appointment, availability and notification tables."""
    from appointment_hub.core.database import dispose_engine
    from appointment_hub.core.database import init_db as _init_db

    async def _run() -> None:
        try:
            await _init_db()
        finally:
            await dispose_engine()

    settings = get_settings()
    try:
        asyncio.run(_run())
    except Exception as e:
        console.print(f"[red]Database initialisation failed: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Database ready:[/green] {settings.database_url}")


@app.command()
def version():
    """Show version information."""
    from appointment_hub import __version__

    console.print(f"AppointmentHub v{__version__}")


if __name__ == "__main__":
    app()
