"""Component factories for CLI commands.

Builds settings and the role registry for commands from the environment,
reporting configuration problems on the console instead of tracebacks.
"""

from rich.console import Console

from ..config import Settings, get_settings
from ..errors import RoleConfigurationError
from ..roles import RoleRegistry, load_roles_config

_console = Console()


def get_registry(roles_file: str | None = None, console: Console | None = None) -> RoleRegistry:
    """Create the role registry.

    Args:
        roles_file: YAML mapping to load; ``ROLES_CONFIG_FILE`` or the bundled
            roles when None
        console: Optional Rich console for output

    Raises:
        SystemExit: If the file exists but is not a valid role mapping
    """
    import typer

    con = console or _console
    settings: Settings = get_settings()
    try:
        config = load_roles_config(roles_file or settings.roles_config_file)
    except RoleConfigurationError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    return RoleRegistry(config)


def relay_url(url: str | None) -> str:
    """Base URL of the relay: explicit, else the configured bind address."""
    if url:
        return url.rstrip("/")
    settings = get_settings()
    host = "localhost" if settings.host in ("0.0.0.0", "127.0.0.1") else settings.host
    return f"http://{host}:{settings.port}"
