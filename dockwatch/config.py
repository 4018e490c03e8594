"""Listener configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Listener settings loaded from environment variables."""

    # Docker settings
    docker_socket: str = "unix:///var/run/docker.sock"
    docker_client_timeout: int = 300  # seconds; also bounds a single stream read

    # Managed images
    local_kafka_image: str = "confluentinc/confluent-local"
    local_schema_registry_image: str = "confluentinc/cp-schema-registry"

    # Log line that marks a managed container as ready to serve requests
    server_started_log_line: str = "Server started, listening for requests..."

    # Poller intervals (seconds)
    # Slow is used while Docker is unreachable, fast while it is reachable
    slow_poll_interval: float = 15.0
    fast_poll_interval: float = 1.0

    # Readiness waits (seconds)
    container_wait_timeout: float = 60.0
    container_poll_interval: float = 1.0

    # Logging configuration
    log_format: str = "json"  # "json" or "text"
    log_level: str = "INFO"

    class Config:
        env_prefix = "DOCKWATCH_"


settings = Settings()
