"""Types shared by the event listener components.

This module defines the decoded form of a Docker `/events` record and the
container states the readiness waiters compare against.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    """Resource kinds the event stream is filtered to."""

    CONTAINER = "container"

    # Reserved; image events are received but not acted on yet
    IMAGE = "image"


class ContainerState(str, Enum):
    """Values of `State.Status` reported by a container inspect."""

    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    RESTARTING = "restarting"
    REMOVING = "removing"
    EXITED = "exited"
    DEAD = "dead"


@dataclass
class LifecycleEvent:
    """A single decoded record from the Docker events stream.

    Attributes:
        kind: Resource kind ("container", "image", ...)
        status: Lifecycle status ("start", "die", ...), if present
        resource_id: Container or image ID, if present
        attributes: Actor attributes (image name, labels, exit code, ...)
        timestamp: When the event occurred, if the record carried a time
    """

    kind: str
    status: str | None = None
    resource_id: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    timestamp: datetime | None = None

    @property
    def image(self) -> str:
        """Image name from the actor attributes, or an empty string."""
        return self.attributes.get("image", "")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LifecycleEvent:
        """Build an event from a raw Docker event dict.

        Raises:
            ValueError: If a field is present but has the wrong type
        """
        actor = _typed_field(data, "Actor", dict) or {}
        attributes = _typed_field(actor, "Attributes", dict) or {}

        # Prefer nanosecond precision when the daemon provides it
        time_nano = _typed_field(data, "timeNano", (int, float))
        time_seconds = _typed_field(data, "time", (int, float))
        timestamp = None
        try:
            if time_nano:
                timestamp = datetime.fromtimestamp(time_nano / 1e9, tz=timezone.utc)
            elif time_seconds:
                timestamp = datetime.fromtimestamp(time_seconds, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"event time out of range: {e}") from e

        return cls(
            kind=_typed_field(data, "Type", str) or "",
            status=_typed_field(data, "status", str) or _typed_field(data, "Action", str),
            resource_id=_typed_field(data, "id", str) or _typed_field(actor, "ID", str),
            attributes={str(k): str(v) for k, v in attributes.items()},
            timestamp=timestamp,
        )

    @classmethod
    def from_json(cls, text: str) -> LifecycleEvent:
        """Decode one newline-delimited JSON record.

        Raises:
            ValueError: If the text is not a JSON object
        """
        data = json.loads(text.strip())
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return cls.from_dict(data)


def _typed_field(data: dict[str, Any], key: str, expected: type | tuple[type, ...]) -> Any:
    """Return `data[key]`, or None if it is missing or null.

    Raises:
        ValueError: If the value is not of the expected type
    """
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, expected):
        raise ValueError(f"event field {key!r} has unexpected type {type(value).__name__}")
    return value
