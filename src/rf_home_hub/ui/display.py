"""Rich terminal display functions for the hub CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from rf_home_hub.core.config import LIVE_CARDS_CHANGED, LIVE_NEW_RF_CODE, LIVE_TRIGGER_ALARM
from rf_home_hub.storage.models import AlarmCard, SwitchCard

if TYPE_CHECKING:
    from rf_home_hub.notify.live import LiveMessage
    from rf_home_hub.storage.models import Card, RFCode


# Global console instances
_console: Console | None = None
_err_console: Console | None = None


def get_console() -> Console:
    """Get the global rich console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def get_err_console() -> Console:
    """Get the global rich console writing to stderr."""
    global _err_console
    if _err_console is None:
        _err_console = Console(stderr=True)
    return _err_console


def print_banner(title: str, subtitle: str | None = None) -> None:
    """Print a styled banner.

    Args:
        title: Main title text.
        subtitle: Optional subtitle.
    """
    text = Text(title, style="bold magenta")
    if subtitle:
        text.append(f"\n{subtitle}", style="dim")
    get_console().print(Panel(text, border_style="magenta"))


def print_success(message: str) -> None:
    get_console().print(f"[bold green]✓[/] {message}")


def print_warning(message: str) -> None:
    get_console().print(f"[bold yellow]⚠[/] {message}")


def print_error(message: str) -> None:
    get_err_console().print(f"[bold red]✗[/] {escape(message)}")


def _device_summary(card: Card) -> str:
    if isinstance(card, SwitchCard):
        state = "on" if card.device.is_on else "off"
        return f"on={card.device.on_code or '-'} off={card.device.off_code or '-'} ({state})"
    if isinstance(card, AlarmCard):
        armed = "[bold red]armed[/]" if card.device.armed else "[dim]disarmed[/]"
        return f"trigger={card.device.trigger_code or '-'} {armed}"
    return "[dim]unsupported type[/]"


def display_cards(cards: list[Card]) -> None:
    """Display cards in a table."""
    console = get_console()

    if not cards:
        console.print("[dim]No cards defined.[/]")
        return

    table = Table(title="Cards", show_header=True, header_style="bold magenta")
    table.add_column("Shortname", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Name")
    table.add_column("Room", style="dim")
    table.add_column("Device")

    for card in cards:
        table.add_row(
            card.shortname,
            card.type,
            card.name or "",
            card.room or "",
            _device_summary(card),
        )

    console.print(table)


def display_codes(codes: list[RFCode], assignments: dict[str, str] | None = None) -> None:
    """Display observed RF codes.

    Args:
        codes: Code records.
        assignments: Optional code -> card shortname mapping.
    """
    console = get_console()
    assignments = assignments or {}

    if not codes:
        console.print("[dim]No codes observed yet.[/]")
        return

    table = Table(title="RF Codes", show_header=True, header_style="bold magenta")
    table.add_column("Code", justify="right", style="cyan")
    table.add_column("First Seen", style="dim")
    table.add_column("Last Seen")
    table.add_column("Status")

    for record in codes:
        if record.ignored:
            status = "[yellow]ignored[/]"
        elif record.code in assignments:
            status = f"[green]{assignments[record.code]}[/]"
        else:
            status = "[bold]available[/]"

        table.add_row(
            record.code,
            record.first_seen_at.strftime("%Y-%m-%d %H:%M:%S"),
            record.last_seen_at.strftime("%Y-%m-%d %H:%M:%S"),
            status,
        )

    console.print(table)


def display_hooks(hooks: dict[str, list[str]]) -> None:
    """Display registered webhooks."""
    console = get_console()

    if not hooks:
        console.print("[dim]No webhooks registered.[/]")
        return

    table = Table(title="Webhooks", show_header=True, header_style="bold magenta")
    table.add_column("Hook", style="cyan")
    table.add_column("URL")

    for name, urls in sorted(hooks.items()):
        for url in urls:
            table.add_row(name, url)

    console.print(table)


def display_ports(ports: list[tuple[str, str]]) -> None:
    """Display selectable serial ports."""
    console = get_console()

    if not ports:
        console.print("[dim]No serial ports available.[/]")
        return

    table = Table(title="Serial Ports", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Device", style="cyan")
    table.add_column("Description")

    for i, (device, description) in enumerate(ports, 1):
        table.add_row(str(i), device, description)

    console.print(table)


def print_live_message(message: LiveMessage) -> None:
    """Print a live event as it happens."""
    console = get_console()
    timestamp = message.timestamp.strftime("%H:%M:%S")

    if message.event == LIVE_TRIGGER_ALARM:
        card = message.payload or {}
        armed = card.get("device", {}).get("armed", False)
        content = Text()
        content.append(f"{card.get('name') or card.get('shortname')}\n", style="bold")
        content.append("armed, subscribers advised" if armed else "disarmed", style="dim")
        console.print(
            Panel(
                content,
                title=f"[bold red]Alarm[/] [dim]{timestamp}[/]",
                border_style="red" if armed else "yellow",
                expand=False,
            )
        )
    elif message.event == LIVE_NEW_RF_CODE:
        code = (message.payload or {}).get("code")
        console.print(f"[dim]{timestamp}[/] [cyan]New RF code[/] {code}")
    elif message.event == LIVE_CARDS_CHANGED:
        console.print(f"[dim]{timestamp}[/] [magenta]Cards changed[/]")
    else:
        console.print(f"[dim]{timestamp}[/] {message.event} {message.payload!r}")
