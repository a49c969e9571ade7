"""CLI main entry point."""

import asyncio
import json
import sys
from urllib.parse import urlparse

import click

from .config import ConfigError, load_config


def validate_ws_url(ctx: click.Context, param: click.Parameter, value: str) -> str:
    """Validate bridge URL format."""
    if not value:
        raise click.BadParameter("URL is required")

    parsed = urlparse(value)
    if parsed.scheme not in ("ws", "wss", "http", "https") or not parsed.netloc:
        raise click.BadParameter(f"Invalid URL format: {value}")

    return value


@click.group()
@click.option("-c", "--config", "config_path", type=click.Path(), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """woo-mcp-server: MCP tools with a bridge to your local PC."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (default: 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port to bind to (default: 3000)")
@click.option("--auth-token", type=str, default=None, help="Bearer token required on /mcp")
@click.option("--bridge-key", type=str, default=None, help="Pre-shared key for the local agent")
@click.option("--bridge-timeout", "bridge_timeout_ms", type=int, default=None, help="Bridge request timeout in ms")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log level (default: info)",
)
@click.option("--log-to-file", is_flag=True, help="Log to ~/.woo-mcp/server.log instead of stderr")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
@click.pass_context
def serve(
    ctx: click.Context,
    host: str | None,
    port: int | None,
    auth_token: str | None,
    bridge_key: str | None,
    bridge_timeout_ms: int | None,
    log_level: str | None,
    log_to_file: bool,
    json_logs: bool,
) -> None:
    """Start the MCP server and the bridge endpoint."""
    from . import __version__
    from .application import WooApplication
    from .shared.logging import configure_logging
    from .shared.paths import get_log_file

    try:
        config = load_config(
            ctx.obj["config_path"],
            overrides={
                "host": host,
                "port": port,
                "auth_token": auth_token,
                "bridge_key": bridge_key,
                "bridge_timeout_ms": bridge_timeout_ms,
                "log_level": log_level,
                "json_logs": json_logs or None,
            },
        )
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    log_file = get_log_file("server") if log_to_file else None
    configure_logging(config.log_level, log_file=log_file, json_output=config.json_logs)

    application = WooApplication(config, version=__version__)
    try:
        asyncio.run(application.run())
    except KeyboardInterrupt:
        pass


@cli.command()
@click.option(
    "--url",
    envvar="WOO_BRIDGE_URL",
    callback=validate_ws_url,
    required=True,
    help="Bridge URL (e.g., wss://example.com/bridge)",
)
@click.option("--bridge-key", envvar="BRIDGE_KEY", required=True, help="Pre-shared bridge key")
@click.option("--exec-timeout", "exec_timeout_ms", type=int, default=10000, help="Exec timeout in ms")
@click.option("--reconnect-delay", type=float, default=1.0, help="Initial reconnect delay in seconds")
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="info",
    help="Log level (default: info)",
)
def agent(url: str, bridge_key: str, exec_timeout_ms: int, reconnect_delay: float, log_level: str) -> None:
    """Run the local PC agent that answers bridge requests.

    \b
    Example usage:
      woo-mcp agent --url wss://example.com/bridge --bridge-key s3cret
    """
    from .agent import ActionExecutor, AgentAuthError, AgentConnection
    from .shared.logging import configure_logging

    configure_logging(log_level)

    # Accept http(s) URLs and talk websocket on the same host
    parsed = urlparse(url)
    if parsed.scheme in ("http", "https"):
        url = parsed._replace(scheme="ws" if parsed.scheme == "http" else "wss").geturl()

    connection = AgentConnection(
        url=url,
        bridge_key=bridge_key,
        executor=ActionExecutor(exec_timeout_ms=exec_timeout_ms),
        reconnect_delay=reconnect_delay,
    )
    try:
        asyncio.run(connection.run())
    except KeyboardInterrupt:
        pass
    except AgentAuthError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.group()
def config() -> None:
    """Inspect server configuration."""


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def config_show(ctx: click.Context, json_output: bool) -> None:
    """Show effective configuration and where each value came from."""
    try:
        cfg = load_config(ctx.obj["config_path"])
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    values = cfg.to_dict()
    if json_output:
        sources = {key: cfg.get_source(key) for key in values}
        click.echo(json.dumps({"values": values, "sources": sources}, indent=2))
        return

    click.echo("woo-mcp-server configuration")
    click.echo("")
    for key, value in values.items():
        click.echo(f"  {key:<18} {value!s:<40} ({cfg.get_source(key)})")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
