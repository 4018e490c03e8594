"""Container images whose lifecycle the event listener tracks."""
from __future__ import annotations

from dataclasses import dataclass

from dockwatch.config import Settings, settings as default_settings
from dockwatch.signals import SignalName


@dataclass(frozen=True)
class ManagedImage:
    """A local service image and the availability flag it drives.

    Attributes:
        repo: Image repository, matched as a prefix of the event's image
        signal: Availability flag set when a container of this image starts or dies
        ready_log_line: Stdout line that marks the service as ready, if any
    """

    repo: str
    signal: SignalName
    ready_log_line: str | None = None

    def matches(self, image_name: str) -> bool:
        """Check whether an event's image name belongs to this image."""
        return bool(self.repo) and image_name.startswith(self.repo)


def get_managed_images(settings: Settings | None = None) -> list[ManagedImage]:
    """Resolve the managed images from the current settings."""
    settings = settings or default_settings
    return [
        ManagedImage(
            repo=settings.local_kafka_image,
            signal=SignalName.LOCAL_KAFKA_AVAILABLE,
            ready_log_line=settings.server_started_log_line,
        ),
        ManagedImage(
            repo=settings.local_schema_registry_image,
            signal=SignalName.LOCAL_SCHEMA_REGISTRY_AVAILABLE,
            ready_log_line=settings.server_started_log_line,
        ),
    ]


def find_managed_image(
    image_name: str, images: list[ManagedImage] | None = None
) -> ManagedImage | None:
    """Return the managed image an event's image name belongs to, if any."""
    for image in images if images is not None else get_managed_images():
        if image.matches(image_name):
            return image
    return None
