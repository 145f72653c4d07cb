"""UI display helpers — panels, participant table, in-place countdown line."""
import sys
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .commands import HELP
from .config import APP_VERSION
from .utils import fmt_countdown, fmt_clock, fmt_time

console = Console()

_STATUS_TEXT = {
    "waiting": "[dim]Waiting for configuration[/dim]",
    "countdown": "[yellow]About to start...[/yellow]",
    "playing": "[green]Playing[/green]",
}


def print_header():
    console.print(
        f"\n  [bold cyan]⏱  cuesync[/bold cyan]"
        f"  [dim]v{APP_VERSION}[/dim]"
    )


def print_help():
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(style="dim")
    for cmd, desc in HELP:
        table.add_row(cmd, desc)
    console.print(table)


def print_room(room: Optional[dict], offset_ms: float, joined: bool, media_name: Optional[str]):
    """Room panel: phase, start time, clock offset, participants."""
    if not room:
        console.print("  [dim]No room information yet.[/dim]")
        return

    status = room.get("status", "waiting")
    lines = [
        f"  {_STATUS_TEXT.get(status, status)}",
        f"  Start: [bold]{fmt_clock(room.get('targetTime'))}[/bold]"
        f"  ·  Offset: {offset_ms:+.0f}ms",
        f"  You: {'[green]joined[/green]' if joined else '[dim]not joined[/dim]'}"
        f"  ·  File: {media_name or '[dim]none[/dim]'}",
    ]
    if status == "playing":
        lines.append(f"  Position: {fmt_time(room.get('currentPosition') or 0)}")

    console.print(Panel(
        "\n".join(lines),
        title=f"[bold cyan]⏱[/bold cyan] {room.get('id', 'room')}",
        border_style="cyan",
        expand=False,
        padding=(0, 1),
    ))
    print_participants(room.get("participants") or [])


def print_participants(participants: list[dict]):
    if not participants:
        console.print("  [dim]No participants yet.[/dim]")
        return
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Participant", style="dim", width=10)
    table.add_column("File", style="white")
    table.add_column("Joined", width=10)
    for p in participants:
        table.add_row(str(p.get("id", "?"))[:8], p.get("mediaFileName", "?"), fmt_clock(p.get("joinedAt")))
    console.print(table)


def print_notice(event: str, data: dict):
    """One line for room lifecycle events worth telling the operator about."""
    if event == "connected":
        console.print(f"  [green]●[/green] Connected to {data.get('url', 'coordinator')}")
    elif event == "disconnected":
        console.print(f"  [red]●[/red] {data.get('message', 'Disconnected')}")
    elif event == "countdown-started":
        console.print(f"  [yellow]⏱[/yellow]  Countdown to {fmt_clock(data.get('targetTime'))}")
    elif event == "playback-start":
        late = "  [dim](late start)[/dim]" if data.get("immediate") else ""
        console.print(f"  [green]▶[/green]  Playback started{late}")
    elif event == "room-reconfigured":
        console.print("  [yellow]↻[/yellow]  Room reconfigured")
    elif event in ("participant-joined", "participant-left"):
        verb = "joined" if event == "participant-joined" else "left"
        console.print(f"  [dim]Participant {verb} · {data.get('totalParticipants', 0)} in room[/dim]")
    elif event == "error":
        console.print(f"  [red]✗[/red] {data.get('message', 'Rejected')}")


class StatusLine:
    """Countdown / elapsed line drawn in place, one row above the prompt.

    Redraws only when the visible text changes, so the 100ms display tick
    costs one terminal write per second.
    """

    def __init__(self, stream=None):
        self._stream = stream or sys.stdout
        self.text = ""

    def render(self, phase: str, ms: float):
        if phase == "countdown":
            text = f"⏱  {fmt_countdown(ms)} until start"
        elif phase == "playing":
            text = f"▶  {fmt_countdown(ms)} elapsed"
        elif phase == "resync":
            text = "⏸  paused — type resync to rejoin the room position"
        elif phase == "error":
            text = "✗  local playback failed — see errors.log"
        else:
            text = "·  waiting for the room to be configured"
        if text == self.text:
            return
        self.text = text
        # Save cursor, draw on the line above, restore
        self._stream.write(f"\0337\033[1A\r  {text}\033[K\0338")
        self._stream.flush()
