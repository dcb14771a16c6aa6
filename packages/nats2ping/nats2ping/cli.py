"""Command line entry point for nats2ping."""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import typer

from nats2ping import __version__
from nats2ping.application.services import Manager
from nats2ping.config import BusSettings, StaticConfig, SupervisorTimeouts, load_static_config
from nats2ping.domain.entities import BusMessage
from nats2ping.domain.exceptions import ConfigurationError
from nats2ping.domain.interfaces import Prober
from nats2ping.infrastructure.logging import LoggingConfig, LogLevel, get_logger, setup_logging
from nats2ping.infrastructure.messaging import ConnectionSupervisor, NATSClient, TopicScheme
from nats2ping.infrastructure.messaging.supervisor import ClientFactory
from nats2ping.infrastructure.probing import PingProber

DEFAULT_LOG_DIR = Path("/tmp/nats2ping_log")
INBOUND_CAPACITY = 1024

logger = get_logger(__name__)

app = typer.Typer(help="Probe destinations and publish their liveness over NATS.")


async def serve(
    settings: BusSettings,
    static_config: StaticConfig,
    prober: Prober | None = None,
    timeouts: SupervisorTimeouts | None = None,
    client_factory: ClientFactory = NATSClient,
) -> None:
    """Run the bridge until SIGINT or SIGTERM.

    Raises:
        ConfigurationError: If the static configuration is invalid
    """
    topics = TopicScheme(settings.topic_prefix)
    inbound: asyncio.Queue[BusMessage] = asyncio.Queue(maxsize=INBOUND_CAPACITY)
    supervisor = ConnectionSupervisor(
        settings, inbound, topics=topics, timeouts=timeouts, client_factory=client_factory
    )
    manager = Manager(prober or PingProber(), inbound, supervisor.outbound, topics)
    await manager.load(static_config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, manager.request_shutdown)

    await supervisor.start()
    await manager.start()
    try:
        await manager.stopped.wait()
    finally:
        await supervisor.stop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
    logger.info("Stopping main application")


@app.command()  # type: ignore[misc]
def run(
    config: str = typer.Option(
        "", "--config", envvar="CONFIG", help="Application config yaml file."
    ),
    client: str | None = typer.Option(
        None, "--client", help="Client name. Use env CLIENTID to override; 'random' for none."
    ),
    broker: str | None = typer.Option(
        None, "--broker", help="NATS server url. Use env BROKERURL to override."
    ),
    user: str | None = typer.Option(
        None, "--user", help="Bus username. Use env BUSUSER to override."
    ),
    password: str | None = typer.Option(
        None, "--password", help="Bus password. Use env BUSPASS to override."
    ),
    topic: str | None = typer.Option(
        None, "--topic", help="Subject prefix. Use env PREFIX to override."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", envvar="DEBUG", help="Enable debug logs. Can be enabled with DEBUG=1."
    ),
    logdir: Path = typer.Option(
        DEFAULT_LOG_DIR, "--logdir", envvar="LOGDIR", help="Logs directory."
    ),
) -> None:
    """Start the bridge."""
    try:
        setup_logging(
            LoggingConfig(level=LogLevel.DEBUG if verbose else LogLevel.INFO, log_dir=logdir)
        )
    except OSError as e:
        typer.echo(f"Logger init failed {logdir} {e}", err=True)
        raise typer.Exit(code=1) from e
    logger.info("Starting main application. config yaml: %s", config)

    overrides = {
        "client_id": client,
        "broker_url": broker,
        "bus_user": user,
        "bus_password": password,
        "topic_prefix": topic,
    }
    settings = BusSettings(**{k: v for k, v in overrides.items() if v is not None})
    if settings.client_id.lower() == "random" or not settings.client_id:
        logger.info("Client name will be auto generated")
        settings = settings.model_copy(update={"client_id": ""})

    try:
        asyncio.run(serve(settings, load_static_config(config)))
    except ConfigurationError as e:
        typer.echo(f"Main init failed: {e}", err=True)
        raise typer.Exit(code=2) from e


@app.command()  # type: ignore[misc]
def version() -> None:
    """Show the nats2ping version."""
    typer.echo(f"nats2ping version {__version__}")


if __name__ == "__main__":
    app()
