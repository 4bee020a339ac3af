"""resource-keepalive: keep-alive HTTP connections for remote-resource clients."""

from resource_keepalive.config import ProxyConfig, ResourceConfig, SSLOptions
from resource_keepalive.connection import Connection, ConnectionFactory
from resource_keepalive.constants import REQUEST_EVENT
from resource_keepalive.endpoint import EndpointKey
from resource_keepalive.exceptions import (
    ConfigurationError,
    ConnectionError,
    ResourceKeepaliveError,
    SSLError,
    TimeoutError,
)
from resource_keepalive.executor import RequestExecutor
from resource_keepalive.instrumentation import Notifier, get_notifier, subscribe
from resource_keepalive.keepalive import ResourceScope, resolve_keepalive, resolve_setting
from resource_keepalive.pool import ConnectionPool, get_shared_pool

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "ConnectionError",
    "ConnectionFactory",
    "ConnectionPool",
    "ConfigurationError",
    "EndpointKey",
    "Notifier",
    "ProxyConfig",
    "REQUEST_EVENT",
    "RequestExecutor",
    "ResourceConfig",
    "ResourceKeepaliveError",
    "ResourceScope",
    "SSLError",
    "SSLOptions",
    "TimeoutError",
    "get_notifier",
    "get_shared_pool",
    "resolve_keepalive",
    "resolve_setting",
    "subscribe",
]
