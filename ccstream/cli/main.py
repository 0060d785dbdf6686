"""CLI for the ccStream gateway.

Usage::

    ccstream serve --port 5000 --save-path /var/cache/ccstream
    ccstream config show
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import click
from rich.console import Console

from ccstream import __version__
from ccstream.api.server import GatewayServer
from ccstream.config.config import ConfigManager, init_config
from ccstream.engine import create_engine
from ccstream.models import Config, LogLevel
from ccstream.utils.exceptions import CCStreamError

logger = logging.getLogger(__name__)


def _verbosity_overrides(verbose: int) -> dict[str, str | None]:
    if verbose >= 2:
        return {"observability.log_level": LogLevel.DEBUG.value}
    if verbose == 1:
        return {"observability.log_level": LogLevel.INFO.value}
    return {}


def _load_config_manager(config_file: str | None) -> ConfigManager:
    try:
        return init_config(config_file)
    except CCStreamError as e:
        raise click.ClickException(str(e)) from e


async def _serve(config: Config, console: Console) -> None:
    """Run the gateway until SIGINT or SIGTERM."""
    engine = create_engine(config.engine)
    server = GatewayServer.from_config(config, engine)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _request_stop(signum: int) -> None:
        logger.info("Received signal %d, initiating shutdown", signum)
        stop_event.set()

    if sys.platform != "win32":
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, _request_stop, signum)

    try:
        await server.start()
        console.print(
            f"[green]ccStream {__version__} listening on "
            f"http://{server.host}:{server.port}[/green]"
        )
        await stop_event.wait()
    finally:
        console.print("[yellow]Shutting down...[/yellow]")
        await server.stop()


@click.group()
@click.version_option(__version__, prog_name="ccstream")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path",
)
@click.pass_context
def cli(ctx, config):
    """CcStream - stream files from BitTorrent swarms over HTTP."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.option("--host", type=str, help="Interface to bind the HTTP server to")
@click.option("--port", "-p", type=int, help="HTTP port (0 picks a free port)")
@click.option("--save-path", type=click.Path(), help="Swarm data directory")
@click.option("--join-timeout", type=float, help="Metadata join timeout (s)")
@click.option("--no-cors", is_flag=True, help="Do not send CORS headers")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v: info, -vv: debug)",
)
@click.pass_context
def serve(ctx, host, port, save_path, join_timeout, no_cors, verbose):
    """Start the streaming gateway."""
    console = Console()
    config_manager = _load_config_manager(ctx.obj.get("config"))

    overrides = {
        "server.host": host,
        "server.port": port,
        "server.cors_enabled": False if no_cors else None,
        "engine.save_path": save_path,
        "engine.join_timeout": join_timeout,
        **_verbosity_overrides(verbose),
    }
    try:
        config_manager.apply_overrides(overrides)
    except CCStreamError as e:
        raise click.ClickException(str(e)) from e

    try:
        asyncio.run(_serve(config_manager.config, console))
    except ImportError as e:
        console.print(
            "[red]The libtorrent bindings are required to serve swarms. "
            "Install them with: pip install 'ccstream[libtorrent]'[/red]"
        )
        raise click.Abort from e
    except RuntimeError as e:
        console.print(f"[red]{e}[/red]")
        raise click.Abort from e
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")


@cli.group()
def config():
    """Inspect configuration."""


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Print the effective configuration as TOML."""
    config_manager = _load_config_manager(ctx.obj.get("config"))
    click.echo(config_manager.export())


def main():
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
