"""Terminal readout of a controller's state, rendered with rich."""

from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from datetime import timezone

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from timeshift.controller import TimeController
from timeshift.state.clock import SystemClock
from timeshift.utils import format_display_date
from timeshift.utils import format_time_period


def _drift_text(virtual: datetime, real: datetime) -> Text:
    drift_ms = (virtual - real) / timedelta(milliseconds=1)
    if abs(drift_ms) < 1000:
        return Text("in sync", style="green")
    label = format_time_period(drift_ms)
    if not label.startswith("-"):
        label = f"+{label}"
    return Text(label, style="yellow")


def render_clock_panel(
    controller: TimeController,
    format_12_hour: bool = True,
    real_now: datetime | None = None,
) -> Panel:
    """Build a panel showing the virtual time and activation state.

    Args:
        controller: The controller to describe.
        format_12_hour: Show the time on a 12-hour clock.
        real_now: Real current time to measure drift against. Defaults to
            the un-intercepted system clock.

    Returns:
        A rich Panel ready to print.
    """
    if real_now is None:
        real_now = datetime.fromtimestamp(SystemClock().now(), tz=timezone.utc)

    virtual = controller.get_current_time()
    active = controller.is_active()

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()

    table.add_row(
        "Virtual time",
        format_display_date(virtual, show_seconds=True, format_12_hour=format_12_hour) + " UTC",
    )
    table.add_row(
        "Status",
        Text("active", style="bold green") if active else Text("inactive", style="dim"),
    )
    table.add_row("Environment", str(controller.environment))
    table.add_row("Drift", _drift_text(virtual, real_now))

    libraries = controller.hijacker.installed_libraries()
    if libraries:
        table.add_row("Libraries", ", ".join(libraries))

    return Panel(
        table,
        title="[bold]timeshift[/bold]",
        border_style="green" if active else "dim",
        expand=False,
    )


def print_clock_status(controller: TimeController, console: Console | None = None) -> None:
    """Print the controller's state panel to ``console`` (stdout by default)."""
    (console or Console()).print(render_clock_panel(controller))
