"""Docker Events API listener for local service availability.

This module implements the listener that keeps the local Kafka and Schema
Registry availability flags in sync with their containers:

1. A poller checks whether Docker is reachable, slowly while it isn't and
   quickly while it is
2. While reachable, the listener holds open a filtered `/events` stream
3. Container "start"/"die" events for managed images are dispatched to
   `EventDispatcher`, which confirms readiness before publishing
4. If Docker drops the connection mid-stream, the managed services are
   marked unavailable immediately rather than on the next poll

A successfully opened stream blocks its tick until the stream ends (Docker
times idle event streams out after a few minutes), so the fast interval
mainly governs how quickly a dropped stream is picked back up.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from dockwatch.config import Settings, settings as default_settings
from dockwatch.engine import EngineStream, StreamTerminated, TerminationReason
from dockwatch.events.base import EventKind, LifecycleEvent
from dockwatch.events.dispatcher import EventDispatcher, RefreshCallback
from dockwatch.events.stream import read_values_from_stream
from dockwatch.events.waiters import ContainerEngine
from dockwatch.images import get_managed_images
from dockwatch.signals import AvailabilitySignals, SignalName
from dockwatch.timing import IntervalPoller

logger = logging.getLogger(__name__)

EVENT_TYPES = [EventKind.CONTAINER.value, EventKind.IMAGE.value]


class DockerEngineClient(ContainerEngine, Protocol):
    """The engine calls the listener depends on."""

    async def ping(self) -> bool: ...

    async def open_event_stream(self, filters: dict[str, list[str]]) -> EngineStream: ...


class DockerEventListener:
    """Listens to the Docker Events API for managed container state changes.

    One instance owns one poller and runs at most one event stream at a
    time. Construct it once at process startup, call `start()`, and call
    `stop()` at teardown.
    """

    def __init__(
        self,
        engine: DockerEngineClient,
        signals: AvailabilitySignals,
        refresh_connection: RefreshCallback | None = None,
        settings: Settings | None = None,
    ):
        self.engine = engine
        self.signals = signals
        self.settings = settings or default_settings

        # Set by stop(); checked by the stream reader at every read
        self._stop_event = asyncio.Event()
        self._handling_event_stream = False
        self._docker_available = False
        self._active_stream: EngineStream | None = None

        self.dispatcher = EventDispatcher(
            engine,
            signals,
            refresh_connection=refresh_connection,
            settings=self.settings,
            stop_event=self._stop_event,
        )
        self.poller = IntervalPoller(
            "poll_docker_events",
            self.listen_for_events,
            slow_frequency=self.settings.slow_poll_interval,
            fast_frequency=self.settings.fast_poll_interval,
            run_immediately=True,
        )

    @property
    def reachable(self) -> bool:
        """Result of the most recent Docker reachability check."""
        return self._docker_available

    def start(self) -> None:
        """Start the poller and resume listening for events.

        The first tick runs right away on every start, including a restart
        after `stop()`.
        """
        self._stop_event.clear()
        self.poller.start()
        logger.info("Docker event listener started")

    def stop(self) -> None:
        """Stop the poller and stop reading the event stream.

        Any event being handled is allowed to finish. The open stream is
        closed so a reader blocked on the socket returns promptly.
        """
        logger.info("Stopping Docker event listener...")
        self.poller.stop()
        self._stop_event.set()
        if self._active_stream is not None:
            self._active_stream.close()

    def is_running(self) -> bool:
        """Check if the listener is currently polling."""
        return self.poller.is_running()

    async def listen_for_events(self) -> None:
        """Run one poller tick.

        Checks Docker reachability, adjusts the poll frequency, and if Docker
        is up, reads the event stream until it ends. Ticks that arrive while
        another tick is still running return immediately.
        """
        if self._handling_event_stream:
            return

        # Held across the reachability check too, so two ticks can't both
        # pass the guard while a ping is in flight
        self._handling_event_stream = True
        try:
            self._docker_available = await self.engine.ping()
            logger.debug(f"Docker available: {self._docker_available}")
            await self.signals.update(SignalName.DOCKER_AVAILABLE, self._docker_available)
            if not self._docker_available:
                self.poller.use_slow_frequency()
                return

            self.poller.use_fast_frequency()
            await self.handle_event_stream_workflow()
        except Exception as e:
            logger.error(f"Error handling event stream: {e}")
        finally:
            self._handling_event_stream = False

    async def handle_event_stream_workflow(self) -> None:
        """Open the filtered event stream and dispatch events until it ends."""
        filters = {
            "type": EVENT_TYPES,
            "image": [image.repo for image in get_managed_images(self.settings)],
        }
        try:
            stream = await self.engine.open_event_stream(filters)
        except Exception as e:
            logger.error(f"Error getting event stream: {e}")
            return

        self._active_stream = stream
        try:
            async for event_string in read_values_from_stream(stream, self._stop_event):
                try:
                    event = LifecycleEvent.from_json(event_string)
                except ValueError as e:
                    logger.error(
                        f"Error parsing event: {e}",
                        extra={"event_string": event_string.strip()},
                    )
                    continue

                try:
                    await self.dispatcher.handle_event(event)
                except Exception as e:
                    logger.error(f"Error handling event: {e}")

        except StreamTerminated as e:
            await self._handle_stream_terminated(e)
        except Exception as e:
            logger.error(f"Error handling events from stream: {e}")
        finally:
            self._active_stream = None
            stream.close()

    async def _handle_stream_terminated(self, error: StreamTerminated) -> None:
        if self._stop_event.is_set():
            logger.debug(f"Event stream closed after stop: {error}")
            return

        if error.reason == TerminationReason.TIMEOUT:
            # Docker times out idle event streams; the next tick reopens it
            logger.debug(f"Event stream ended: {error}")
        elif error.reason == TerminationReason.PEER_CLOSED:
            # Docker shut down and we can't listen for events anymore. The
            # poller keeps running and drops to the slow frequency on its
            # next reachability check.
            logger.error(f"Lost connection to Docker socket: {error}")
            await self._mark_local_resources_unavailable()
        else:
            logger.error(f"Error handling events from stream: {error}")

    async def _mark_local_resources_unavailable(self) -> None:
        for image in get_managed_images(self.settings):
            await self.signals.update(image.signal, False)
