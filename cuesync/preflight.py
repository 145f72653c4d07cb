"""Module 7b — Startup Preflight Check"""
import shutil

import httpx
from rich.console import Console

from .config import APP_VERSION, HTTP_TIMEOUT, PLAYER_BIN, SERVER_URL

console = Console()


async def run_preflight(server_url: str = SERVER_URL) -> bool:
    """
    Run all startup checks. Print results. Return True unless a required check fails.
    A missing player only limits this client to configuring and watching the countdown.
    """
    console.print(f"\n  [bold]⏱  cuesync v{APP_VERSION}[/bold] — preflight check\n")

    checks = [
        ("Python deps", _check_python_deps, True),
        ("Media player", _check_player, False),
        ("Coordinator", lambda: _check_coordinator(server_url), True),
    ]

    results = []
    for i, (label, fn, required) in enumerate(checks, 1):
        ok, msg, fix = await fn()
        results.append((ok, label, fix, required))
        icon = "[green]✓[/green]" if ok else ("[red]✗[/red]" if required else "[yellow]![/yellow]")
        dot_count = 30 - len(label)
        dots = "." * max(dot_count, 3)
        color = "green" if ok else ("red" if required else "yellow")
        console.print(f"  [{i}/{len(checks)}] {label} {dots} {icon} [{color}]{msg}[/{color}]")

    failures = [(label, fix) for ok, label, fix, _ in results if not ok and fix]
    if failures:
        console.print("")
        for label, fix in failures:
            console.print(f"  [yellow]Fix for {label}:[/yellow]")
            for line in fix.strip().splitlines():
                console.print(f"    {line}")
            console.print("")

    console.print("")
    return all(ok for ok, _, _, required in results if required)


async def _check_python_deps() -> tuple[bool, str, str]:
    missing = []
    versions = []
    try:
        import httpx as hx
        versions.append(f"httpx {hx.__version__}")
    except ImportError:
        missing.append("httpx")

    try:
        import websockets
        versions.append(f"websockets {getattr(websockets, '__version__', 'ok')}")
    except ImportError:
        missing.append("websockets")

    try:
        import dotenv
        versions.append("python-dotenv")
    except ImportError:
        missing.append("python-dotenv")

    if missing:
        return False, f"missing: {', '.join(missing)}", "Run: uv sync"
    return True, ", ".join(versions), ""


async def _check_player() -> tuple[bool, str, str]:
    path = shutil.which(PLAYER_BIN)
    if path:
        return True, path, ""
    return False, f"{PLAYER_BIN} not found", (
        f"{PLAYER_BIN} ships with ffmpeg:\n"
        "  brew install ffmpeg      (macOS)\n"
        "  apt install ffmpeg       (Debian/Ubuntu)\n"
        "Or point PLAYER_BIN at another ffplay-compatible binary."
    )


async def _check_coordinator(server_url: str) -> tuple[bool, str, str]:
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            r = await client.get(f"{server_url}/api/health")
            if r.status_code == 200:
                return True, f"running at {server_url.split('://', 1)[-1]}", ""
    except Exception:
        pass
    return False, "not responding", (
        f"Start the coordinator with:\n"
        f"  uv run python serve.py\n"
        f"Or point CUESYNC_SERVER at it (now {server_url})."
    )
