"""Bounded waits used to confirm a container is actually ready.

Both waits treat a timeout as a normal negative result: they return False
rather than raising.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Protocol

from dockwatch.engine import EngineStream, StreamTerminated
from dockwatch.events.base import ContainerState
from dockwatch.events.stream import read_values_from_stream

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT_SECONDS = 60.0
DEFAULT_POLL_INTERVAL = 1.0


class ContainerEngine(Protocol):
    """The engine calls the waiters depend on."""

    async def container_state(self, container_id: str) -> str | None: ...

    async def open_log_stream(
        self,
        container_id: str,
        since: datetime,
        follow: bool = True,
        stdout_only: bool = True,
    ) -> EngineStream: ...


async def match_container_state(
    engine: ContainerEngine,
    container_id: str,
    state: ContainerState,
) -> bool:
    """Check the state of a container and return True if it matches.

    Any error while inspecting the container counts as "not matching yet".
    """
    try:
        current = await engine.container_state(container_id)
    except Exception as e:
        logger.debug(f"Error checking state of container {container_id}, will retry: {e}")
        return False
    logger.debug(f"Container {container_id} state: {current}")
    return current == state.value


async def wait_for_container_state(
    engine: ContainerEngine,
    container_id: str,
    state: ContainerState,
    since: datetime,
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    stop_event: asyncio.Event | None = None,
) -> bool:
    """Poll a container until it reports `state` or the wait runs out.

    The wait is measured from `since` (usually the event time), not from
    when this call started.

    Returns:
        True on the first poll that observes the state, False on timeout
    """
    max_wait = timedelta(seconds=max_wait_seconds)
    while True:
        if await match_container_state(engine, container_id, state):
            return True
        if datetime.now(timezone.utc) - since > max_wait:
            logger.debug(f"Timed out waiting for container {container_id} to be {state.value}")
            return False
        if stop_event is not None and stop_event.is_set():
            logger.debug(f"Listener stopped while waiting for container {container_id}")
            return False
        await asyncio.sleep(poll_interval)


async def wait_for_container_log(
    engine: ContainerEngine,
    container_id: str,
    string_to_include: str,
    since: datetime,
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
    stop_event: asyncio.Event | None = None,
) -> bool:
    """Follow a container's stdout until `string_to_include` appears.

    Log fragments are concatenated before matching, so the target may span
    several reads. The buffer is never trimmed; this is meant for the short
    startup window of a local service, not for long-running log tailing.

    Returns:
        True as soon as the text is seen, False if the stream ends, the
        listener stops, or `max_wait_seconds` pass first
    """
    try:
        stream = await engine.open_log_stream(container_id, since, follow=True, stdout_only=True)
    except Exception as e:
        logger.error(f"Error getting log stream for container {container_id}: {e}")
        return False

    async def match_log_line() -> bool:
        log_text = ""
        async for value in read_values_from_stream(stream, stop_event, max_wait_seconds):
            log_text += value
            if string_to_include in log_text:
                logger.debug(
                    "Container log line found",
                    extra={"container_id": container_id, "string_to_include": string_to_include},
                )
                return True
        return False

    try:
        # The decoder only checks its own deadline when a chunk arrives; this
        # bounds a quiet log stream as well.
        return await asyncio.wait_for(match_log_line(), timeout=max_wait_seconds)
    except asyncio.TimeoutError:
        logger.debug(f"Timed out waiting for log line from container {container_id}")
        return False
    except StreamTerminated as e:
        logger.debug(f"Log stream for container {container_id} ended: {e}")
        return False
    finally:
        stream.close()
