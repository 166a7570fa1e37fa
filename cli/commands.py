"""Command handlers for the CLI"""

import asyncio
import logging

from rich.prompt import Confirm

from settings import REFRESH_INTERVAL
from bridge import BridgeServer, PulseService
from cli.status_display import print_snapshot, show_credential_status

logger = logging.getLogger(__name__)


def login(service: PulseService, console) -> bool:
    """
    Run the interactive login and show the first snapshot

    Args:
        service: PulseService instance
        console: Rich console for output

    Returns:
        True if login succeeded
    """
    console.print("Starting OAuth login flow...")
    result = asyncio.run(service.login())

    if result["success"]:
        console.print("[green]Authentication successful![/green]")
        print_snapshot(result["data"], console)
        return True

    console.print(f"[red]Authentication failed:[/red] {result['error']}")
    return False


def logout(service: PulseService, console, assume_yes: bool = False) -> bool:
    """
    Clear stored credentials

    Args:
        service: PulseService instance
        console: Rich console for output
        assume_yes: Skip the confirmation prompt
    """
    if not assume_yes and not Confirm.ask("Are you sure you want to clear stored credentials?"):
        console.print("Logout cancelled")
        return False

    result = service.logout()
    if result["success"]:
        console.print("[green]Credentials cleared successfully[/green]")
        return True

    console.print(f"[red]ERROR:[/red] {result['error']}")
    return False


def status(service: PulseService, console) -> bool:
    """
    Fetch usage once and print it

    Returns:
        True if the snapshot is not an error
    """
    data = asyncio.run(service.refresh())
    print_snapshot(data, console)
    return not data.get("error")


async def _watch(service: PulseService, console, interval: float):
    while True:
        # Each tick waits for the previous fetch, so fetches never overlap
        data = await service.refresh()
        print_snapshot(data, console)
        await asyncio.sleep(interval)


def watch(service: PulseService, console, interval: float = REFRESH_INTERVAL):
    """
    Poll usage every interval seconds until interrupted

    Args:
        service: PulseService instance
        console: Rich console for output
        interval: Seconds between fetches
    """
    console.print(f"[dim]Polling every {interval}s, press Ctrl+C to stop[/dim]")
    asyncio.run(_watch(service, console, interval))


def auth_status(service: PulseService, console):
    """Show the credential status table"""
    show_credential_status(service.storage, console)


def serve(service: PulseService, console, bind_address: str = None, port: int = None):
    """Run the local HTTP bridge (blocking)"""
    server = BridgeServer(service, bind_address=bind_address, port=port)
    console.print(f"Serving Claude Pulse bridge on http://{server.bind_address}:{server.port}")
    server.run()
