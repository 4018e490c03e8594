"""Docker engine access for the event listener.

Wraps the blocking Docker SDK behind coroutine methods (each call runs in a
worker thread) and exposes raw byte streams for `/events` and
`/containers/{id}/logs`. Errors raised while reading a stream are translated
into a `StreamTerminated` carrying a `TerminationReason`, so callers can tell
a passive read timeout from the daemon going away without looking at
exception messages.
"""
from __future__ import annotations

import asyncio
import http.client
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Iterator

import docker
import requests
import urllib3
from docker.errors import DockerException
from docker.types.daemon import CancellableStream

from dockwatch.config import settings

logger = logging.getLogger(__name__)


class TerminationReason(str, Enum):
    """Why a stream stopped producing data."""

    # Read timed out with nothing else wrong; the daemon is likely still up
    TIMEOUT = "timeout"

    # The daemon closed or reset the connection
    PEER_CLOSED = "peer_closed"

    OTHER = "other"


class StreamTerminated(Exception):
    """Raised when an engine stream ends because of a transport error."""

    def __init__(self, reason: TerminationReason, message: str = ""):
        self.reason = reason
        super().__init__(message or f"stream terminated ({reason.value})")


_TIMEOUT_ERRORS = (
    urllib3.exceptions.ReadTimeoutError,
    requests.exceptions.Timeout,
    TimeoutError,
)

_PEER_CLOSED_ERRORS = (
    urllib3.exceptions.ProtocolError,
    requests.exceptions.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
    http.client.IncompleteRead,
    http.client.RemoteDisconnected,
    ConnectionError,
)


def classify_stream_error(error: BaseException) -> TerminationReason:
    """Map a transport exception raised during a stream read to a reason.

    Timeouts are checked first: several timeout types also subclass the
    connection error types.
    """
    if isinstance(error, StreamTerminated):
        return error.reason
    if isinstance(error, _TIMEOUT_ERRORS):
        return TerminationReason.TIMEOUT
    if isinstance(error, _PEER_CLOSED_ERRORS):
        return TerminationReason.PEER_CLOSED
    return TerminationReason.OTHER


class EngineStream:
    """Iterator over the raw byte chunks of a streaming engine response.

    The SDK returns streams wrapped in a `CancellableStream`, which ends
    iteration quietly when the connection breaks. Chunks are read from the
    wrapped generator instead so a dropped connection surfaces as
    `StreamTerminated`; the wrapper is kept for `close()`.
    """

    def __init__(self, stream: Any):
        self._stream = stream
        self._closed = False
        if isinstance(stream, CancellableStream):
            stream = stream._stream
        self._iterator: Iterator[bytes] = iter(stream)

    def __iter__(self) -> EngineStream:
        return self

    def __next__(self) -> bytes:
        try:
            return next(self._iterator)
        except StopIteration:
            raise
        except Exception as e:
            raise StreamTerminated(classify_stream_error(e), str(e)) from e

    def close(self) -> None:
        """Close the underlying HTTP response."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self._stream, "close", None)
        if close is None:
            return
        try:
            close()
        # AttributeError: the SDK looks up the socket through the response,
        # which is already torn down after a broken read
        except (DockerException, requests.exceptions.RequestException, OSError, AttributeError) as e:
            logger.debug(f"Error closing engine stream: {e}")


class DockerEngine:
    """Coroutine facade over a lazily created `docker.DockerClient`."""

    def __init__(self, base_url: str | None = None, timeout: int | None = None):
        self.base_url = base_url or settings.docker_socket
        self.timeout = timeout or settings.docker_client_timeout
        self._client: docker.DockerClient | None = None

    @property
    def client(self) -> docker.DockerClient:
        """Docker client, created on first use.

        Creating the client talks to the daemon to negotiate the API version,
        so it fails while Docker is down and is retried on the next access.
        """
        if self._client is None:
            self._client = docker.DockerClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def ping(self) -> bool:
        """Check if the Docker engine API answers a ping."""
        try:
            return bool(await asyncio.to_thread(lambda: self.client.ping()))
        except (DockerException, requests.exceptions.RequestException, OSError) as e:
            logger.debug(f"Docker ping failed: {e}")
            return False

    async def open_event_stream(self, filters: dict[str, list[str]]) -> EngineStream:
        """Open the `/events` stream without decoding its records."""
        stream = await asyncio.to_thread(
            lambda: self.client.api.events(filters=filters, decode=False)
        )
        return EngineStream(stream)

    async def container_state(self, container_id: str) -> str | None:
        """Return the container's `State.Status`, or None if it has none."""
        info = await asyncio.to_thread(lambda: self.client.api.inspect_container(container_id))
        return (info.get("State") or {}).get("Status")

    async def open_log_stream(
        self,
        container_id: str,
        since: datetime,
        follow: bool = True,
        stdout_only: bool = True,
    ) -> EngineStream:
        """Open a container log stream starting at `since`."""
        stream = await asyncio.to_thread(
            lambda: self.client.api.logs(
                container_id,
                stdout=True,
                stderr=not stdout_only,
                stream=True,
                follow=follow,
                since=int(since.timestamp()),
            )
        )
        return EngineStream(stream)

    def close(self) -> None:
        """Close the Docker client."""
        if self._client is not None:
            try:
                self._client.close()
            except (DockerException, OSError) as e:
                logger.debug(f"Error closing Docker client: {e}")
            self._client = None
