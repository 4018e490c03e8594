"""Route decoded lifecycle events to container start/die handling."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from dockwatch.config import Settings, settings as default_settings
from dockwatch.events.base import ContainerState, EventKind, LifecycleEvent
from dockwatch.events.waiters import (
    ContainerEngine,
    wait_for_container_log,
    wait_for_container_state,
)
from dockwatch.images import find_managed_image, get_managed_images
from dockwatch.signals import AvailabilitySignals

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[None]]


class EventDispatcher:
    """Turns container lifecycle events into availability flag updates.

    Only containers started from a managed image are acted on. A "start"
    event is confirmed by waiting for the container to report "running" and,
    for images that print one, for the readiness log line; a "die" event
    marks the service unavailable right away.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        signals: AvailabilitySignals,
        refresh_connection: RefreshCallback | None = None,
        settings: Settings | None = None,
        stop_event: asyncio.Event | None = None,
    ):
        self.engine = engine
        self.signals = signals
        self.refresh_connection = refresh_connection
        self.settings = settings or default_settings
        self.stop_event = stop_event

    async def handle_event(self, event: LifecycleEvent) -> None:
        """Handle a single event, passing it to the handler for its kind."""
        if not event.status:
            logger.debug(f"Missing required 'status' field in event, bailing: {event}")
            return

        if event.kind == EventKind.CONTAINER.value:
            await self.handle_container_event(event)

    async def handle_container_event(self, event: LifecycleEvent) -> None:
        """Pass container "start" and "die" events through for further handling."""
        if event.status == "start":
            await self.handle_container_start_event(event)
        elif event.status == "die":
            await self.handle_container_die_event(event)

    async def handle_container_start_event(self, event: LifecycleEvent) -> None:
        """Confirm a managed container is ready, then publish its availability."""
        if not event.resource_id or not event.image:
            logger.debug(f"Missing required fields in container start event, bailing: {event}")
            return

        container_id = event.resource_id
        image_name = event.image
        managed = find_managed_image(image_name, get_managed_images(self.settings))
        if managed is None:
            logger.debug(f"Ignoring container start event for image: {image_name}")
            return

        # Used as the start of both waits and as the log stream's "since"
        event_time = event.timestamp or datetime.now(timezone.utc)

        started = await wait_for_container_state(
            self.engine,
            container_id,
            ContainerState.RUNNING,
            event_time,
            max_wait_seconds=self.settings.container_wait_timeout,
            poll_interval=self.settings.container_poll_interval,
            stop_event=self.stop_event,
        )
        if not started:
            logger.debug(
                f"Container {container_id} didn't show a 'running' state, "
                "bailing and trying again later"
            )
            return

        if managed.ready_log_line:
            logger.debug(
                "Container status shows 'running', checking container logs...",
                extra={"string_to_include": managed.ready_log_line, "image_name": image_name},
            )
            started = await wait_for_container_log(
                self.engine,
                container_id,
                managed.ready_log_line,
                event_time,
                max_wait_seconds=self.settings.container_wait_timeout,
                stop_event=self.stop_event,
            )
            logger.debug(
                "Done waiting for container log line",
                extra={"started": started, "image_name": image_name},
            )

        await self.signals.update(managed.signal, started)
        if self.refresh_connection is not None:
            await self.refresh_connection()

    async def handle_container_die_event(self, event: LifecycleEvent) -> None:
        """Mark a managed service unavailable when its container dies."""
        image_name = event.image
        if not image_name:
            return
        logger.debug(f"Container 'die' event for image: {image_name}")

        managed = find_managed_image(image_name, get_managed_images(self.settings))
        if managed is None:
            return

        await self.signals.update(managed.signal, False)
