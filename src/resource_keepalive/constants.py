"""Common constants used throughout resource-keepalive."""

DEFAULT_TIMEOUT_SECONDS = 60.0

# Environment variable consulted when no timeout is configured explicitly
TIMEOUT_ENV_VAR = "RESOURCE_KEEPALIVE_TIMEOUT"

DEFAULT_PORTS = {"http": 80, "https": 443}

# Instrumentation event fired around every request
REQUEST_EVENT = "request.active_resource"
