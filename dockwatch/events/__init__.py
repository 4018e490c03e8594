"""Docker event listening and readiness confirmation.

This package keeps the availability flags of locally-run services (the local
Kafka cluster and Schema Registry) in sync with their containers:

- DockerEventListener: polls Docker reachability and consumes the events stream
- EventDispatcher: routes container start/die events for managed images
- read_values_from_stream: decodes a raw stream into newline-delimited records
- wait_for_container_state / wait_for_container_log: bounded readiness checks
"""

from dockwatch.events.base import ContainerState, EventKind, LifecycleEvent
from dockwatch.events.dispatcher import EventDispatcher
from dockwatch.events.docker_events import DockerEventListener
from dockwatch.events.stream import read_values_from_stream
from dockwatch.events.waiters import (
    match_container_state,
    wait_for_container_log,
    wait_for_container_state,
)

__all__ = [
    "ContainerState",
    "DockerEventListener",
    "EventDispatcher",
    "EventKind",
    "LifecycleEvent",
    "match_container_state",
    "read_values_from_stream",
    "wait_for_container_log",
    "wait_for_container_state",
]
