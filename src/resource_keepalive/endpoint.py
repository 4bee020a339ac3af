"""Endpoint keys identifying connection pool slots."""

from dataclasses import dataclass
from typing import Optional, Union

import httpx

from resource_keepalive.config import ProxyConfig
from resource_keepalive.constants import DEFAULT_PORTS
from resource_keepalive.exceptions import ConfigurationError


@dataclass(frozen=True)
class EndpointKey:
    """Remote host/port, plus the proxy it is reached through if any.

    The same origin reached through different proxies gets different keys.
    """

    host: str
    port: int
    proxy_host: Optional[str] = None
    proxy_port: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "host", self.host.lower())
        if self.proxy_host is not None:
            object.__setattr__(self, "proxy_host", self.proxy_host.lower())

    @classmethod
    def for_site(
        cls, site: Union[str, httpx.URL], proxy: Optional[ProxyConfig] = None
    ) -> "EndpointKey":
        """Build the key for a site URL and optional proxy."""
        url = httpx.URL(site)
        if not url.host:
            raise ConfigurationError(f"Site URL has no host: {site}")
        port = url.port or DEFAULT_PORTS.get(url.scheme)
        if port is None:
            raise ConfigurationError(f"Cannot determine port for site: {site}")
        if proxy is None:
            return cls(host=url.host, port=port)
        return cls(host=url.host, port=port, proxy_host=proxy.host, proxy_port=proxy.port)

    @property
    def proxied(self) -> bool:
        return self.proxy_host is not None

    def __str__(self) -> str:
        if self.proxied:
            return f"{self.host}:{self.port}:{self.proxy_host}:{self.proxy_port}"
        return f"{self.host}:{self.port}"
