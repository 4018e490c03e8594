"""Docker lifecycle listener that tracks readiness of local Kafka services."""
