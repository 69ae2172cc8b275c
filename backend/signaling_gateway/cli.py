"""
Signaling Gateway CLI.

Command-line interface for running and probing the relay.
"""

import asyncio
import json
import sys
import time

import httpx
import typer
import websockets
from rich.console import Console
from rich.table import Table

from shared.config.settings import settings

app = typer.Typer(
    name="signaling-gateway",
    help="Signaling Relay Gateway CLI",
    add_completion=False,
)
console = Console()


def _base_url(host: str, port: int) -> str:
    return f"http://{host}:{port}"


# =============================================================================
# Server Commands
# =============================================================================

@app.command()
def serve(
    host: str = typer.Option(settings.ws_gateway_host, help="Bind address"),
    port: int = typer.Option(settings.ws_gateway_port, help="Port for WebSocket and HTTP"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the relay."""
    import uvicorn

    console.print(f"[blue]Starting signaling relay on {host}:{port}[/blue]")
    uvicorn.run(
        "signaling_gateway.main:app",
        host=host,
        port=port,
        reload=reload,
    )


# =============================================================================
# WebSocket Commands
# =============================================================================

@app.command()
def ws_test(
    channel: str = typer.Argument("1", help="Channel to join"),
    host: str = typer.Option("localhost", help="Relay host"),
    port: int = typer.Option(settings.ws_gateway_port, help="Relay port"),
    timeout: float = typer.Option(5.0, help="Seconds to wait for each message"),
):
    """Join a channel and print the presence messages the relay sends."""
    url = f"ws://{host}:{port}/{channel}"

    async def _test() -> bool:
        console.print(f"[blue]Testing WebSocket: {url}[/blue]")
        try:
            async with websockets.connect(url, close_timeout=timeout) as ws:
                first = json.loads(await asyncio.wait_for(ws.recv(), timeout=timeout))
                if first.get("type") != "you":
                    console.print(f"[red]✗ Unexpected first message: {first}[/red]")
                    return False
                my_id = first["peer"]["id"]
                console.print(f"[green]✓ Connected as #{my_id}[/green]")

                # Peers already present, then our own announcement
                while True:
                    message = json.loads(await asyncio.wait_for(ws.recv(), timeout=timeout))
                    peer_id = message.get("peer", {}).get("id")
                    console.print(f"  {message.get('type')} #{peer_id}")
                    if message.get("type") == "peer-connected" and peer_id == my_id:
                        return True
        except websockets.exceptions.ConnectionClosed as e:
            console.print(f"[red]✗ Closed by relay: {e.rcvd.reason if e.rcvd else e}[/red]")
        except asyncio.TimeoutError:
            console.print("[red]✗ Timed out waiting for the relay[/red]")
        except OSError as e:
            console.print(f"[red]✗ Connection failed: {e}[/red]")
        return False

    if not asyncio.run(_test()):
        raise typer.Exit(1)


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health(
    host: str = typer.Option("localhost", help="Relay host"),
    port: int = typer.Option(settings.ws_gateway_port, help="Relay port"),
):
    """Check relay liveness and show connection statistics."""
    base_url = _base_url(host, port)

    table = Table(title="Relay Health")
    table.add_column("Check", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Response Time", style="yellow")

    stats = None
    with httpx.Client(timeout=5.0) as client:
        for name, path in (("Liveness", "/"), ("Stats", "/stats")):
            try:
                start = time.time()
                response = client.get(f"{base_url}{path}")
                elapsed = (time.time() - start) * 1000
            except httpx.HTTPError as e:
                table.add_row(name, f"✗ {type(e).__name__}", "-")
                continue

            if response.status_code == 200:
                table.add_row(name, "✓ Healthy", f"{elapsed:.0f}ms")
                if path == "/stats":
                    stats = response.json()
            else:
                table.add_row(name, f"✗ Status {response.status_code}", f"{elapsed:.0f}ms")

    console.print(table)

    if stats is not None:
        channels = Table(title=f"Connections ({stats.get('total_connections', 0)})")
        channels.add_column("Channel", style="cyan")
        channels.add_column("Peers", style="green")
        for channel, count in sorted(stats.get("channels", {}).items()):
            channels.add_row(channel, str(count))
        console.print(channels)


@app.command()
def version():
    """Show version information."""
    from signaling_gateway.main import app as gateway_app

    table = Table(title="Signaling Gateway Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("Gateway", gateway_app.version)
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
