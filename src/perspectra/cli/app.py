"""Main CLI application using Typer."""
import asyncio
import os

import httpx
import typer
from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from ..client import Message, MessageStatus, PerspectiveClient
from ..config import get_settings
from ..errors import CompletionError
from ..logconfig import configure_logging
from .providers import get_registry, relay_url

# Create Typer app
app = typer.Typer(
    name="perspectra",
    help="Streaming perspective conversion between workplace roles",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


@app.callback()
def setup(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (debug, info, warning, error); PERSPECTRA_LOG_LEVEL by default"
    )
):
    """Configure logging for every command."""
    configure_logging(log_level or get_settings().log_level)


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    roles_file: str | None = typer.Option(
        None,
        "--roles-file",
        "-r",
        help="YAML role mapping (default: bundled roles)"
    ),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the relay server."""
    import uvicorn

    settings = get_settings()
    if roles_file:
        # Read by the app factory, which may run in a reloader subprocess
        os.environ["ROLES_CONFIG_FILE"] = roles_file
        get_settings.cache_clear()

    bind_host = host or settings.host
    bind_port = port or settings.port
    console.print(f"[dim]Serving on http://{bind_host}:{bind_port}[/dim]")
    uvicorn.run(
        "perspectra.server.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command()
def convert(
    source: str = typer.Argument(..., help="Source role id"),
    target: str = typer.Argument(..., help="Target role id"),
    content: str = typer.Argument(..., help="Text to convert"),
    url: str | None = typer.Option(None, "--url", "-u", help="Relay base URL"),
):
    """Stream a perspective conversion from a running relay."""
    async def _convert() -> Message:
        message = Message(role="assistant")

        with Live(_render(message), console=console, refresh_per_second=12) as live:
            async with PerspectiveClient(relay_url(url)) as client:
                # Ctrl-C cancels this task; the client marks the message aborted
                return await client.convert(
                    source,
                    target,
                    content,
                    on_update=lambda m: live.update(_render(m)),
                    message=message,
                )

    try:
        message = asyncio.run(_convert())
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted.[/yellow]")
        raise typer.Exit(code=130)

    if message.status is MessageStatus.ERROR:
        console.print(f"[red]Error: {message.error}[/red]")
        raise typer.Exit(code=1)


@app.command()
def chat(
    message: str = typer.Argument(..., help="Message to send"),
    url: str | None = typer.Option(None, "--url", "-u", help="Relay base URL"),
):
    """Send a single non-streaming chat message."""
    async def _chat() -> str:
        async with PerspectiveClient(relay_url(url)) as client:
            return await client.chat(message)

    try:
        reply = asyncio.run(_chat())
    except (CompletionError, httpx.HTTPError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[bold green]Assistant:[/bold green] {reply}")


@app.command()
def roles(
    roles_file: str | None = typer.Option(
        None,
        "--roles-file",
        "-r",
        help="YAML role mapping (default: bundled roles)"
    )
):
    """Show the configured roles."""
    registry = get_registry(roles_file, console)
    if not registry.available:
        console.print("[yellow]No role configuration found[/yellow]")
        raise typer.Exit(code=1)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Perspective", style="dim", max_width=60)
    for role in registry.roles():
        first_line = role.perspective_text.strip().splitlines()[0] if role.perspective_text.strip() else ""
        table.add_row(role.id, role.display_name, first_line)
    console.print(table)


def _render(message: Message) -> Text:
    text = Text()
    if message.reasoning_content:
        text.append(message.reasoning_content, style="dim italic")
        if message.reasoning_duration is not None:
            text.append(f"\n(reasoned for {message.reasoning_duration:.1f}s)", style="dim")
        text.append("\n\n")
    if message.status is MessageStatus.LOADING and not message.content:
        text.append("...", style="dim")
    else:
        text.append(message.content)
    return text


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
