"""Connections to a single remote endpoint and the factory that builds them.

A Connection wraps one ``httpx.Client`` whose transport holds at most one
socket. The client is built lazily, so constructing a Connection never
touches the network. Timeout, auth, SSL options, proxy and the keep-alive
flag are per-call settings: every request carries its own and applies them
under the connection lock. A change of SSL options or proxy reopens the
transport under the same Connection handle.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Tuple, Union

import httpx

from resource_keepalive.config import ProxyConfig, SSLOptions
from resource_keepalive.constants import DEFAULT_TIMEOUT_SECONDS
from resource_keepalive.endpoint import EndpointKey

logger = logging.getLogger(__name__)

TransportFactory = Callable[["Connection"], httpx.BaseTransport]


class Connection:
    """Handle to one transport channel bound to an endpoint.

    Requests on a Connection are serialized by its lock: an HTTP/1.1
    keep-alive channel carries one request at a time.
    """

    def __init__(
        self,
        host: str,
        port: int,
        scheme: str = "http",
        proxy: Optional[ProxyConfig] = None,
        transport_factory: Optional[TransportFactory] = None,
    ):
        self.host = host
        self.port = port
        self.scheme = scheme
        self.proxy = proxy
        self.auth: Optional[httpx.Auth] = None
        self.timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS
        self.ssl_options: Optional[SSLOptions] = None
        self.keepalive = False
        self.request_count = 0

        self._transport_factory = transport_factory
        self._client: Optional[httpx.Client] = None
        self._client_settings: Optional[Tuple[Optional[ProxyConfig], Optional[SSLOptions]]] = None
        self._lock = threading.Lock()

    @property
    def key(self) -> EndpointKey:
        if self.proxy is None:
            return EndpointKey(self.host, self.port)
        return EndpointKey(self.host, self.port, self.proxy.host, self.proxy.port)

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def configure(
        self,
        *,
        proxy: Optional[ProxyConfig] = None,
        auth: Optional[httpx.Auth] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
        ssl_options: Optional[SSLOptions] = None,
        keepalive: bool = False,
    ) -> "Connection":
        """Apply request-scoped settings. Returns self."""
        self.proxy = proxy
        self.auth = auth
        self.timeout = timeout
        self.ssl_options = ssl_options
        self.keepalive = keepalive
        return self

    def request(
        self,
        method: str,
        url: httpx.URL,
        headers: Optional[dict] = None,
        content: Optional[Union[str, bytes]] = None,
        *,
        proxy: Optional[ProxyConfig] = None,
        auth: Optional[httpx.Auth] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
        ssl_options: Optional[SSLOptions] = None,
        keepalive: bool = False,
    ) -> httpx.Response:
        """
        Send one request over this connection and read the full response.

        The per-call settings are applied under the connection lock, so a
        request waiting for a busy connection cannot pick up the settings of
        a later caller.
        """
        with self._lock:
            self.configure(
                proxy=proxy,
                auth=auth,
                timeout=timeout,
                ssl_options=ssl_options,
                keepalive=keepalive,
            )
            client = self._ensure_client()
            request = client.build_request(
                method, url, headers=headers, content=content, timeout=timeout
            )
            response = client.send(request, auth=auth)
            self.request_count += 1
            return response

    def close(self) -> None:
        """Close the underlying transport. The handle may be used again."""
        with self._lock:
            self._close_client()

    def _ensure_client(self) -> httpx.Client:
        settings = (self.proxy, self.ssl_options)
        if self._client is not None and self._client_settings != settings:
            logger.debug(f"Transport settings changed for {self.key}, reopening")
            self._close_client()
        if self._client is None:
            self._client = httpx.Client(transport=self._build_transport())
            self._client_settings = settings
        return self._client

    def _build_transport(self) -> httpx.BaseTransport:
        if self._transport_factory is not None:
            return self._transport_factory(self)
        ssl_options = self.ssl_options or SSLOptions()
        return httpx.HTTPTransport(
            verify=ssl_options.to_httpx(),
            proxy=self.proxy.to_httpx() if self.proxy else None,
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=1),
        )

    def _close_client(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._client_settings = None

    def __repr__(self) -> str:
        return f"<Connection {self.key} open={self.is_open} requests={self.request_count}>"


class ConnectionFactory:
    """Builds new Connections.

    This is the single place where connection creation is observed, so it
    carries the diagnostic log line and the creation counter.
    """

    def __init__(self, transport_factory: Optional[TransportFactory] = None):
        """
        Initialize the factory.

        Args:
            transport_factory: Optional callable building the httpx transport
                for each connection (e.g. an ``httpx.MockTransport`` in tests)
        """
        self.transport_factory = transport_factory
        self.created_count = 0
        self._lock = threading.Lock()

    def create(
        self,
        host: str,
        port: int,
        proxy: Optional[ProxyConfig] = None,
        scheme: str = "http",
    ) -> Connection:
        """
        Create a connection to host:port, optionally routed through a proxy.

        Never opens a socket; connection failures surface on first request.
        """
        connection = Connection(
            host,
            port,
            scheme=scheme,
            proxy=proxy,
            transport_factory=self.transport_factory,
        )
        with self._lock:
            self.created_count += 1
        logger.info(f"New connection to {connection.key}")
        return connection
