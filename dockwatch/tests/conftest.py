"""Shared pytest fixtures and fakes for listener tests."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import pytest

from dockwatch.config import Settings
from dockwatch.engine import EngineStream
from dockwatch.signals import AvailabilitySignals, SignalName

KAFKA_IMAGE = "confluentinc/confluent-local"
SCHEMA_REGISTRY_IMAGE = "confluentinc/cp-schema-registry"
READY_LINE = "Server started, listening for requests..."


def iter_chunks(items: list[Any]):
    """Yield byte chunks, raising any exception instance found in the list."""
    for item in items:
        if isinstance(item, BaseException):
            raise item
        yield item


class FakeStream:
    """Closable iterable standing in for a Docker SDK response stream."""

    def __init__(self, items):
        self._chunks = iter_chunks(items)
        self.closed = False

    def __iter__(self):
        return self._chunks

    def close(self):
        self.closed = True


def event_record(
    status: str | None = "start",
    image: str | None = KAFKA_IMAGE,
    container_id: str | None = "c1",
    kind: str = "container",
    **extra: Any,
) -> bytes:
    """Build one newline-terminated Docker event record."""
    record: dict[str, Any] = {"Type": kind, "Actor": {"Attributes": {}}}
    if status is not None:
        record["status"] = status
    if image is not None:
        record["Actor"]["Attributes"]["image"] = image
    if container_id is not None:
        record["id"] = container_id
    record.update(extra)
    return (json.dumps(record) + "\n").encode()


class FakeEngine:
    """In-memory stand-in for DockerEngine.

    `states` maps a container ID to a list of states returned by successive
    inspects (the last one repeats); an exception instance in the list is
    raised instead of returned.
    """

    def __init__(
        self,
        reachable: bool = True,
        event_chunks: list[Any] | None = None,
        states: dict[str, list[Any]] | None = None,
        log_chunks: list[Any] | None = None,
        open_events_error: Exception | None = None,
        open_logs_error: Exception | None = None,
    ):
        self.reachable = reachable
        self.event_chunks = event_chunks or []
        self.states = states or {}
        self.log_chunks = log_chunks or []
        self.open_events_error = open_events_error
        self.open_logs_error = open_logs_error

        self.ping_calls = 0
        self.event_filters: list[dict] = []
        self.state_calls: list[str] = []
        self.log_requests: list[dict] = []
        self.streams: list[EngineStream] = []

    async def ping(self) -> bool:
        self.ping_calls += 1
        return self.reachable

    async def open_event_stream(self, filters: dict[str, list[str]]) -> EngineStream:
        self.event_filters.append(filters)
        if self.open_events_error:
            raise self.open_events_error
        stream = EngineStream(FakeStream(self.event_chunks))
        self.streams.append(stream)
        return stream

    async def container_state(self, container_id: str) -> str | None:
        self.state_calls.append(container_id)
        states = self.states.get(container_id, [None])
        index = min(len(self.state_calls) - 1, len(states) - 1)
        state = states[index]
        if isinstance(state, BaseException):
            raise state
        return state

    async def open_log_stream(
        self,
        container_id: str,
        since: datetime,
        follow: bool = True,
        stdout_only: bool = True,
    ) -> EngineStream:
        self.log_requests.append(
            {"container_id": container_id, "since": since, "follow": follow, "stdout_only": stdout_only}
        )
        if self.open_logs_error:
            raise self.open_logs_error
        stream = EngineStream(FakeStream(self.log_chunks))
        self.streams.append(stream)
        return stream


@pytest.fixture
def test_settings() -> Settings:
    """Settings with short waits and intervals."""
    return Settings(
        slow_poll_interval=0.2,
        fast_poll_interval=0.05,
        container_wait_timeout=1.0,
        container_poll_interval=0.01,
    )


@pytest.fixture
def signals() -> AvailabilitySignals:
    return AvailabilitySignals()


@pytest.fixture
def fired(signals: AvailabilitySignals) -> list[tuple[SignalName, bool]]:
    """Record every notification fired by the `signals` fixture."""
    calls: list[tuple[SignalName, bool]] = []
    for name in SignalName:
        signals.subscribe(name, lambda value, name=name: calls.append((name, value)))
    return calls
