"""
Unit tests for the connection pool registry.
"""

import threading

from resource_keepalive.connection import Connection
from resource_keepalive.endpoint import EndpointKey
from resource_keepalive.pool import ConnectionPool, get_shared_pool


KEY = EndpointKey("api.example.com", 80)


class TestConnectionPool:
    """Test lookup/register semantics."""

    def test_lookup_returns_registered_connection_when_pooling(self):
        pool = ConnectionPool()
        connection = Connection("api.example.com", 80)
        pool.register(KEY, connection)
        assert pool.lookup(KEY, True) is connection

    def test_lookup_ignores_registry_when_not_pooling(self):
        pool = ConnectionPool()
        pool.register(KEY, Connection("api.example.com", 80))
        assert pool.lookup(KEY, False) is None

    def test_lookup_miss(self):
        assert ConnectionPool().lookup(KEY, True) is None

    def test_register_replaces_existing_entry(self):
        pool = ConnectionPool()
        first = Connection("api.example.com", 80)
        second = Connection("api.example.com", 80)
        pool.register(KEY, first)
        pool.register(KEY, second)
        assert len(pool) == 1
        assert pool.lookup(KEY, True) is second

    def test_one_entry_per_distinct_key(self):
        pool = ConnectionPool()
        proxied = EndpointKey("api.example.com", 80, "proxy.local", 3128)
        pool.register(KEY, Connection("api.example.com", 80))
        pool.register(proxied, Connection("api.example.com", 80))
        assert len(pool) == 2
        assert KEY in pool
        assert proxied in pool
        assert set(pool.keys()) == {KEY, proxied}

    def test_clear_closes_connections(self):
        pool = ConnectionPool()
        connection = Connection("api.example.com", 80)
        pool.register(KEY, connection)
        pool.clear()
        assert len(pool) == 0
        assert not connection.is_open

    def test_concurrent_register_and_lookup(self):
        pool = ConnectionPool()
        keys = [EndpointKey(f"host{i}.example.com", 80) for i in range(20)]
        errors = []

        def worker(key):
            try:
                for _ in range(50):
                    pool.register(key, Connection(key.host, key.port))
                    assert pool.lookup(key, True) is not None
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(key,)) for key in keys]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(pool) == len(keys)


def test_shared_pool_is_a_singleton():
    assert get_shared_pool() is get_shared_pool()
