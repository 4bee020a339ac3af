"""Request dispatch over pooled or fresh connections.

The executor is the only place a network call is made, so it is also the
only place transport failures are classified. Timeouts become
``exceptions.TimeoutError``, TLS failures become ``exceptions.SSLError``,
and everything else propagates untouched. Nothing is retried, and a pooled
connection stays registered after a failure.
"""

import logging
import ssl
from typing import Any, Dict, Optional, Union

import httpx

from resource_keepalive import exceptions
from resource_keepalive.config import ResourceConfig
from resource_keepalive.connection import Connection, ConnectionFactory
from resource_keepalive.constants import REQUEST_EVENT
from resource_keepalive.endpoint import EndpointKey
from resource_keepalive.instrumentation import Notifier, get_notifier
from resource_keepalive.pool import ConnectionPool, get_shared_pool

logger = logging.getLogger(__name__)

Body = Union[str, bytes, Any]


def _is_ssl_failure(exc: BaseException) -> bool:
    """Check whether exc or anything in its cause/context chain is an SSL error."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


class RequestExecutor:
    """Issues HTTP verbs against one configured site.

    Wraps the transport client by composition: each request obtains a
    Connection from the pool (or a fresh one from the factory) and sends the
    request with this executor's per-call settings bound to it.
    """

    def __init__(
        self,
        config: ResourceConfig,
        pool: Optional[ConnectionPool] = None,
        factory: Optional[ConnectionFactory] = None,
        notifier: Optional[Notifier] = None,
    ):
        """
        Initialize the executor.

        Args:
            config: Effective settings of the resource type (keepalive resolved)
            pool: Connection registry (defaults to the shared pool)
            factory: Connection factory (defaults to a plain ConnectionFactory)
            notifier: Instrumentation notifier (defaults to the shared notifier)

        Raises:
            ConfigurationError: If the site is missing or the timeout
                environment variable is invalid
        """
        self.config = config
        self.site = config.site_url()
        self.pool = pool if pool is not None else get_shared_pool()
        self.factory = factory if factory is not None else ConnectionFactory()
        self.notifier = notifier if notifier is not None else get_notifier()

        self.timeout = config.effective_timeout()
        self.last_connection: Optional[Connection] = None

    @property
    def keepalive(self) -> bool:
        return bool(self.config.keepalive)

    @property
    def key(self) -> EndpointKey:
        return EndpointKey.for_site(self.site, self.config.proxy)

    # ============= Verbs =============

    def get(self, path: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """Execute a GET request. Used to find resources."""
        return self.request("GET", path, headers=headers)

    def delete(self, path: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """Execute a DELETE request. Used to delete resources."""
        return self.request("DELETE", path, headers=headers)

    def put(self, path: str, body: Body = "", headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """Execute a PUT request. Used to update resources."""
        return self.request("PUT", path, body=body, headers=headers)

    def post(self, path: str, body: Body = "", headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """Execute a POST request. Used to create resources."""
        return self.request("POST", path, body=body, headers=headers)

    def head(self, path: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """Execute a HEAD request. Used to check existence and metadata of resources."""
        return self.request("HEAD", path, headers=headers)

    # ============= Dispatch =============

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Body] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Send a request to the site and return the raw response.

        Args:
            method: HTTP method
            path: Request path, joined onto the site URL
            body: Optional request body; non-bytes values are sent as str(body)
            headers: Extra headers; these override configured defaults

        Returns:
            The transport response, unmodified

        Raises:
            exceptions.TimeoutError: The transport timed out
            exceptions.SSLError: TLS negotiation or verification failed
        """
        method = method.upper()
        url = self.site.join(path)
        request_headers = self.build_request_headers(headers)
        content = None if body is None else body if isinstance(body, (str, bytes)) else str(body)

        connection = self._connection_for_request()
        self.last_connection = connection
        payload: Dict[str, Any] = {
            "method": method.lower(),
            "request_uri": self._request_uri(path),
        }
        logger.debug(f"{method} {payload['request_uri']} via {connection.key} (keepalive={self.keepalive})")

        try:
            with self.notifier.instrument(REQUEST_EVENT, payload):
                payload["result"] = connection.request(
                    method,
                    url,
                    headers=request_headers,
                    content=content,
                    proxy=self.config.proxy,
                    auth=self._auth(),
                    timeout=self.timeout,
                    ssl_options=self.config.ssl_options,
                    keepalive=self.keepalive,
                )
        except (httpx.TimeoutException, TimeoutError) as e:
            raise exceptions.TimeoutError(str(e)) from e
        except (httpx.TransportError, ssl.SSLError) as e:
            if not _is_ssl_failure(e):
                raise
            raise exceptions.SSLError(str(e)) from e
        finally:
            if not self.keepalive:
                connection.close()

        return payload["result"]

    def build_request_headers(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Merge configured default headers, caller headers and derived headers."""
        merged = dict(self.config.headers)
        merged.update(headers or {})
        if not any(name.lower() == "connection" for name in merged):
            merged["Connection"] = "keep-alive" if self.keepalive else "close"
        return merged

    def _connection_for_request(self) -> Connection:
        pooling_enabled = self.keepalive
        key = self.key
        connection = self.pool.lookup(key, pooling_enabled)
        if connection is None:
            connection = self.factory.create(
                self.site.host, key.port, proxy=self.config.proxy, scheme=self.site.scheme
            )
            if pooling_enabled:
                self.pool.register(key, connection)
        else:
            logger.debug(f"Reusing pooled connection for {key}")
        return connection

    def _auth(self) -> Optional[httpx.Auth]:
        credentials = self.config.credentials()
        if credentials is None:
            return None
        if self.config.auth_type == "digest":
            return httpx.DigestAuth(*credentials)
        return httpx.BasicAuth(*credentials)

    def _request_uri(self, path: str) -> str:
        return f"{self.site.scheme}://{self.site.host}:{self.key.port}{path}"
