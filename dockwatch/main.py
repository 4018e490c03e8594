"""Process entry point: run the Docker event listener until interrupted."""
from __future__ import annotations

import asyncio
import logging
import signal

from dockwatch.config import settings
from dockwatch.engine import DockerEngine
from dockwatch.events import DockerEventListener
from dockwatch.logging_config import setup_logging
from dockwatch.signals import AvailabilitySignals, SignalName
from dockwatch.version import __version__

logger = logging.getLogger(__name__)


async def refresh_local_connection() -> None:
    """Ask downstream consumers to rebuild the local connection."""
    logger.info("Updating local connection resources")


def log_signal_changes(signals: AvailabilitySignals) -> None:
    """Log every availability flag change."""
    for name in SignalName:
        def log_change(value: bool, name: SignalName = name) -> None:
            logger.info(f"{name.value} -> {value}")

        signals.subscribe(name, log_change)


async def run() -> None:
    """Start the listener, wait for SIGINT/SIGTERM, then shut down."""
    engine = DockerEngine(settings.docker_socket, settings.docker_client_timeout)
    signals = AvailabilitySignals()
    log_signal_changes(signals)
    listener = DockerEventListener(
        engine,
        signals,
        refresh_connection=refresh_local_connection,
        settings=settings,
    )

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except NotImplementedError:
            # Windows event loops don't support signal handlers
            pass

    logger.info(f"dockwatch {__version__} starting (docker: {settings.docker_socket})")
    listener.start()
    try:
        await shutdown.wait()
    finally:
        listener.stop()
        engine.close()
        logger.info("dockwatch shutting down")


def main() -> None:
    setup_logging()
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
