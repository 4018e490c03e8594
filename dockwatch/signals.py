"""Availability flags shared with the UI layer.

Each flag is a named boolean ("is the local Kafka cluster available?") with a
paired change notification. The listener sets a flag and then fires its
notification; consumers subscribe to the notification rather than polling.
"""
from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class SignalName(str, Enum):
    """Availability flags owned by the event listener."""

    LOCAL_KAFKA_AVAILABLE = "local_kafka_available"
    LOCAL_SCHEMA_REGISTRY_AVAILABLE = "local_schema_registry_available"
    DOCKER_AVAILABLE = "docker_available"


SignalCallback = Callable[[bool], "Awaitable[None] | None"]


class AvailabilitySignals:
    """In-memory store of availability flags with change subscribers."""

    def __init__(self):
        self._values: dict[SignalName, bool] = {}
        self._subscribers: dict[SignalName, list[SignalCallback]] = {}

    def get(self, name: SignalName) -> bool | None:
        """Current value of a flag, or None if it was never set."""
        return self._values.get(name)

    def set(self, name: SignalName, value: bool) -> bool:
        """Store a flag value. Returns True if the stored value changed."""
        changed = self._values.get(name) != value
        self._values[name] = value
        return changed

    def subscribe(self, name: SignalName, callback: SignalCallback) -> None:
        """Register a callback to run whenever the flag's notification fires."""
        self._subscribers.setdefault(name, []).append(callback)

    async def fire(self, name: SignalName, value: bool) -> None:
        """Notify subscribers of a flag's new value.

        A failing subscriber is logged and does not stop the others.
        """
        for callback in list(self._subscribers.get(name, [])):
            try:
                result = callback(value)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in {name.value} subscriber: {e}")

    async def update(self, name: SignalName, value: bool) -> bool:
        """Set a flag and fire its notification if the value changed.

        Returns True if subscribers were notified.
        """
        if not self.set(name, value):
            return False
        await self.fire(name, value)
        return True
