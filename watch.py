"""Synchronized watch client — entry point."""
import asyncio
import logging
import sys

from rich.logging import RichHandler

from cuesync.client import SyncClient
from cuesync.commands import parse_command
from cuesync.config import LOG_LEVEL, SERVER_URL
from cuesync.errors import PlayerError
from cuesync.preflight import run_preflight
from cuesync.ui import (
    console,
    print_header,
    print_help,
    print_room,
    print_notice,
    StatusLine,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(message)s",
    handlers=[RichHandler(console=console, show_path=False)],
)
# Lifecycle notices are printed by the UI; keep library chatter down
logging.getLogger("cuesync.clock").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


async def _read_line() -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, console.input, "  ❯ ")


def _load(client: SyncClient, path: str) -> bool:
    if client.controller.joined:
        console.print("  [yellow]Leave the room before changing the file.[/yellow]")
        return False
    try:
        client.player.load(path)
    except PlayerError as e:
        console.print(f"  [red]✗[/red] {e}")
        return False
    console.print(f"  [green]✓[/green] {client.player.media_name}")
    return True


async def main():
    print_header()

    ok = await run_preflight(SERVER_URL)
    if not ok:
        sys.exit(1)

    status = StatusLine()
    client = SyncClient(SERVER_URL, render=status.render, on_event=print_notice)

    if len(sys.argv) > 1:
        _load(client, sys.argv[1])

    print_help()
    session = asyncio.create_task(client.run())
    console.print("")

    try:
        while True:
            text = await _read_line()
            cmd = parse_command(text, client.clock.synced_now())

            if cmd["error"]:
                console.print(f"  [yellow]{cmd['error']}[/yellow]")
                continue

            c = cmd["command"]
            if c is None:
                continue
            if c == "quit":
                break
            if c == "help":
                print_help()
            elif c == "status":
                print_room(client.controller.room, client.clock.offset_ms,
                           client.controller.joined, client.player.media_name)
            elif c == "setup":
                await client.setup_room(cmd["target_ms"])
            elif c == "reconfigure":
                await client.reconfigure_room()
            elif c == "load":
                _load(client, cmd["path"])
            elif c == "join":
                if not await client.join_room():
                    console.print("  [yellow]Load a file and wait for the connection first.[/yellow]")
            elif c == "leave":
                if not await client.leave_room():
                    console.print("  [dim]You are not in the room.[/dim]")
            elif c == "pause":
                client.player.pause()
            elif c == "play":
                try:
                    client.player.resume()
                except PlayerError as e:
                    console.print(f"  [red]✗[/red] {e}")
            elif c == "resync":
                if not client.controller.resync():
                    console.print("  [dim]Nothing to resync — the room isn't playing or you haven't joined.[/dim]")
    finally:
        await client.stop()
        session.cancel()
        try:
            await session
        except (asyncio.CancelledError, Exception):
            pass

    console.print("\n  [bold cyan]⏱[/bold cyan]  See you next time.\n")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, EOFError):
        console.print("\n\n  Goodbye.\n")
        sys.exit(0)
