"""Registry of pooled connections, one per endpoint.

The pool has no expiry or health checking. A connection the server has
closed stays registered, and the next pooled request reuses it; callers
force recreation by refreshing their executor or by registering a new
connection for the key. Entries are never evicted automatically.
"""

import logging
import threading
from typing import Dict, List, Optional

from resource_keepalive.connection import Connection
from resource_keepalive.endpoint import EndpointKey

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Thread-safe map from EndpointKey to Connection.

    The lock guards the map only; it is never held while a request is in
    flight.
    """

    def __init__(self):
        self._connections: Dict[EndpointKey, Connection] = {}
        self._lock = threading.Lock()

    def lookup(self, key: EndpointKey, pooling_enabled: bool) -> Optional[Connection]:
        """
        Return the registered connection for key.

        Args:
            key: Endpoint to look up
            pooling_enabled: When False, always returns None so the caller
                builds a fresh connection

        Returns:
            The pooled connection, or None
        """
        if not pooling_enabled:
            return None
        with self._lock:
            return self._connections.get(key)

    def register(self, key: EndpointKey, connection: Connection) -> None:
        """Insert or replace the connection for key."""
        with self._lock:
            previous = self._connections.get(key)
            self._connections[key] = connection
        if previous is not None and previous is not connection:
            logger.warning(f"Replaced pooled connection for {key}")
        else:
            logger.debug(f"Registered pooled connection for {key}")

    def keys(self) -> List[EndpointKey]:
        with self._lock:
            return list(self._connections)

    def clear(self) -> None:
        """Drop every entry and close its transport."""
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for connection in connections:
            connection.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._connections


_shared_pool: Optional[ConnectionPool] = None
_shared_pool_lock = threading.Lock()


def get_shared_pool() -> ConnectionPool:
    """Return the process-wide pool, creating it on first call."""
    global _shared_pool
    with _shared_pool_lock:
        if _shared_pool is None:
            _shared_pool = ConnectionPool()
            logger.debug("Created shared connection pool")
        return _shared_pool
