"""tor-ctrl CLI entry point.

Commands:
    send      Send a raw command and print every reply line
    getinfo   Query daemon information
    getconf   Read a daemon configuration value
    setconf   Change a daemon configuration value
    signal    Send a signal
    newnym    Request a new identity
    config    View/edit tor-ctrl configuration
"""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tor_ctrl import __version__
from tor_ctrl.constants import DEFAULT_CONNECT_TIMEOUT, ExitCode, Signal
from tor_ctrl.control import ControlClient, ReplyLine
from tor_ctrl.exceptions import (
    AuthenticationError,
    ConfigError,
    CookieFileError,
    ProtocolError,
    TorConnectionError,
)
from tor_ctrl.utils.config import ControlConfig, get_value, load_config, save_config, set_value

console = Console()


def _validate_port(ctx: click.Context, param: click.Parameter, value: int | None) -> int | None:
    """Validate port is within valid range."""
    if value is not None and not 1 <= value <= 65535:
        raise click.BadParameter("Port must be between 1 and 65535")
    return value


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _build_config(**overrides: Any) -> ControlConfig:
    """Merge CLI options over the [control] table of the config file."""
    try:
        base = ControlConfig.from_dict(get_value(load_config(), "control", {}))
    except ConfigError as e:
        console.print(f"[red]Config error: {e}[/red]")
        sys.exit(ExitCode.CONFIG_ERROR)

    return replace(base, **{k: v for k, v in overrides.items() if v is not None})


def _run(ctx: click.Context, operation: Callable[[ControlClient], Awaitable[Any]]) -> Any:
    """Connect, run one operation, and always disconnect.

    Maps library errors to CLI exit codes.
    """
    config: ControlConfig = ctx.obj["config"]
    timeout: float = ctx.obj["timeout"]

    async def session() -> Any:
        client = ControlClient(config)
        try:
            await asyncio.wait_for(client.connect(), timeout=timeout)
            return await operation(client)
        finally:
            await client.disconnect()

    try:
        return asyncio.run(session())
    except AuthenticationError as e:
        console.print(f"[red]Authentication failed: {e}[/red]")
        sys.exit(ExitCode.AUTHENTICATION_ERROR)
    except CookieFileError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(ExitCode.AUTHENTICATION_ERROR)
    except TimeoutError:
        console.print(f"[red]Timed out connecting to {config.address}[/red]")
        sys.exit(ExitCode.CONNECTION_ERROR)
    except TorConnectionError as e:
        console.print(f"[red]Connection error: {e}[/red]")
        sys.exit(ExitCode.CONNECTION_ERROR)
    except ProtocolError as e:
        code = f"{e.code} " if e.code is not None else ""
        console.print(f"[red]Command failed: {code}{e.message}[/red]")
        sys.exit(ExitCode.PROTOCOL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(ExitCode.KEYBOARD_INTERRUPT)


def _print_replies(replies: list[ReplyLine], as_json: bool) -> None:
    if as_json:
        console.print_json(json.dumps([r.to_dict() for r in replies]))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Code", justify="right")
    table.add_column("Message")

    for reply in replies:
        style = "red" if reply.is_error else None
        table.add_row(str(reply.code), reply.message, style=style)
        if reply.data:
            table.add_row("", f"[dim]{reply.data}[/dim]")

    console.print(table)


@click.group()
@click.version_option(version=__version__, prog_name="tor-ctrl")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--host", default=None, help="Control port host (default: localhost)")
@click.option(
    "--port",
    default=None,
    type=int,
    callback=_validate_port,
    help="Control port (default: 9051)",
)
@click.option("--socket", "socket_path", default=None, help="Control socket path (overrides host/port)")
@click.option("--password", default=None, help="Control port password")
@click.option("--cookie", "cookie_path", default=None, help="Authentication cookie file")
@click.option(
    "--timeout",
    default=DEFAULT_CONNECT_TIMEOUT,
    type=float,
    show_default=True,
    help="Connect timeout in seconds",
)
@click.pass_context
def main(
    ctx: click.Context,
    debug: bool,
    host: str | None,
    port: int | None,
    socket_path: str | None,
    password: str | None,
    cookie_path: str | None,
    timeout: float,
) -> None:
    """tor-ctrl - Talk to a running Tor daemon over its control port."""
    _setup_logging(debug)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["timeout"] = timeout
    if ctx.invoked_subcommand != "config":
        ctx.obj["config"] = _build_config(
            host=host,
            port=port,
            socket_path=socket_path,
            password=password,
            cookie_path=cookie_path,
        )


# ============================================================================
# CONTROL COMMANDS
# ============================================================================


@main.command()
@click.argument("tokens", nargs=-1, required=True)
@click.option("--json", "as_json", is_flag=True, help="Print replies as JSON")
@click.pass_context
def send(ctx: click.Context, tokens: tuple, as_json: bool) -> None:
    """Send a raw command and print every reply line.

    Examples:

        tor-ctrl send GETINFO version

        tor-ctrl --socket /run/tor/control send GETCONF SocksPort
    """
    replies = _run(ctx, lambda client: client.send_command(list(tokens)))
    _print_replies(replies, as_json)


@main.command()
@click.argument("key")
@click.pass_context
def getinfo(ctx: click.Context, key: str) -> None:
    """Query daemon information (e.g. version)."""
    result = _run(ctx, lambda client: client.get_info(key))
    console.print(result.message)


@main.command()
@click.argument("key")
@click.pass_context
def getconf(ctx: click.Context, key: str) -> None:
    """Read a daemon configuration value."""
    value = _run(ctx, lambda client: client.get_config(key))
    console.print(f"{key} = {value}")


@main.command()
@click.argument("key")
@click.argument("value")
@click.pass_context
def setconf(ctx: click.Context, key: str, value: str) -> None:
    """Change a daemon configuration value."""
    result = _run(ctx, lambda client: client.set_config(key, value))
    console.print(f"[green]{result.code} {result.message}[/green]")


@main.command("signal")
@click.argument(
    "name",
    type=click.Choice([s.value for s in Signal], case_sensitive=False),
)
@click.pass_context
def signal_cmd(ctx: click.Context, name: str) -> None:
    """Send a signal to the daemon (e.g. NEWNYM, RELOAD)."""
    replies = _run(ctx, lambda client: client.signal(Signal(name.upper())))
    result = replies[0]
    console.print(f"[green]{result.code} {result.message}[/green]")


@main.command()
@click.pass_context
def newnym(ctx: click.Context) -> None:
    """Request a new identity (SIGNAL NEWNYM)."""
    result = _run(ctx, lambda client: client.get_new_identity())
    console.print(f"[green]{result.code} {result.message}[/green]")


# ============================================================================
# CONFIG COMMAND
# ============================================================================


@main.group()
def config() -> None:
    """View and edit configuration."""
    pass


def _load_config_or_exit() -> dict:
    try:
        return load_config()
    except ConfigError as e:
        console.print(f"[red]Config error: {e}[/red]")
        sys.exit(ExitCode.CONFIG_ERROR)


@config.command("show")
def config_show() -> None:
    """Show current configuration."""
    from tor_ctrl.utils.config import get_config_path

    cfg = _load_config_or_exit()
    console.print(f"[dim]Config file: {get_config_path()}[/dim]\n")
    console.print_json(json.dumps(cfg, indent=2))


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set a configuration value.

    KEY is a dot-separated path (e.g., control.port)
    VALUE is the new value
    """
    cfg = _load_config_or_exit()

    # Try to parse as JSON for complex values
    try:
        parsed_value = json.loads(value)
    except json.JSONDecodeError:
        parsed_value = value

    set_value(cfg, key, parsed_value)
    save_config(cfg)
    console.print(f"[green]Set {key} = {parsed_value}[/green]")


@config.command("get")
@click.argument("key")
def config_get(key: str) -> None:
    """Get a configuration value.

    KEY is a dot-separated path (e.g., control.host)
    """
    cfg = _load_config_or_exit()
    value = get_value(cfg, key)

    if value is None:
        console.print(f"[yellow]Key '{key}' not found[/yellow]")
        sys.exit(ExitCode.GENERAL_ERROR)

    console.print(f"{key} = {json.dumps(value)}")


if __name__ == "__main__":
    main()
