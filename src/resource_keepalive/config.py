"""Configuration models supplied by the resource-mapping layer."""

import os
import ssl
from typing import Any, Dict, Literal, Optional, Tuple, Union

import httpx
from pydantic import BaseModel, Field, field_validator

from resource_keepalive.constants import DEFAULT_PORTS, DEFAULT_TIMEOUT_SECONDS, TIMEOUT_ENV_VAR
from resource_keepalive.exceptions import ConfigurationError

_TIMEOUT_DISABLED = {"none", "off", "disabled"}


def parse_timeout(value: Optional[str]) -> Optional[float]:
    """Parse a timeout in seconds from an environment string.

    Missing or blank values give the default; 'none', 'off' and 'disabled'
    turn the timeout off.
    """
    if value is None or not value.strip():
        return DEFAULT_TIMEOUT_SECONDS
    if value.strip().lower() in _TIMEOUT_DISABLED:
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid timeout value '{value}'. Provide seconds or 'none'.") from e


class ProxyConfig(BaseModel):
    """HTTP proxy a connection is routed through."""

    model_config = {"frozen": True}

    host: str = Field(..., description="Proxy host")
    port: int = Field(..., description="Proxy port")
    scheme: str = Field("http", description="Scheme used to talk to the proxy")
    user: Optional[str] = Field(None, description="Proxy user")
    password: Optional[str] = Field(None, description="Proxy password")

    @classmethod
    def from_url(cls, url: Union[str, httpx.URL]) -> "ProxyConfig":
        """Build a proxy config from a URL such as ``http://user:pw@proxy:3128``."""
        parsed = httpx.URL(url)
        if not parsed.host:
            raise ConfigurationError(f"Proxy URL has no host: {url}")
        port = parsed.port or DEFAULT_PORTS.get(parsed.scheme)
        if port is None:
            raise ConfigurationError(f"Cannot determine proxy port for: {url}")
        return cls(
            host=parsed.host,
            port=port,
            scheme=parsed.scheme,
            user=parsed.username or None,
            password=parsed.password or None,
        )

    @property
    def url(self) -> str:
        """Proxy URL without credentials."""
        return f"{self.scheme}://{self.host}:{self.port}"

    def to_httpx(self) -> httpx.Proxy:
        if self.user:
            return httpx.Proxy(self.url, auth=(self.user, self.password or ""))
        return httpx.Proxy(self.url)


class SSLOptions(BaseModel):
    """TLS settings applied to a connection's transport."""

    model_config = {"frozen": True}

    verify: Union[bool, str] = Field(
        True, description="Verify server certificates; a string is a CA bundle path"
    )
    cert: Optional[str] = Field(None, description="Client certificate file")
    key: Optional[str] = Field(None, description="Client private key file")

    def to_httpx(self) -> Union[bool, ssl.SSLContext]:
        """Value for the ``verify`` argument of an httpx transport."""
        if self.verify is True and not self.cert:
            return True
        if self.verify is False:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        elif isinstance(self.verify, str):
            context = ssl.create_default_context(cafile=self.verify)
        else:
            context = ssl.create_default_context()
        if self.cert:
            context.load_cert_chain(self.cert, self.key)
        return context


class ResourceConfig(BaseModel):
    """Connection-relevant settings of one resource type.

    Only fields passed explicitly count as set (see ``model_fields_set``);
    unset fields fall back to more general scopes.
    """

    site: Optional[str] = Field(None, description="Base site URL, e.g. http://api.example.com")
    proxy: Optional[ProxyConfig] = Field(None, description="Proxy to route requests through")
    user: Optional[str] = Field(None, description="User for HTTP authentication")
    password: Optional[str] = Field(None, description="Password for HTTP authentication")
    auth_type: Literal["basic", "digest"] = Field("basic", description="HTTP authentication scheme")
    timeout: Optional[float] = Field(
        DEFAULT_TIMEOUT_SECONDS, description="Request timeout in seconds (None disables)"
    )
    ssl_options: Optional[SSLOptions] = Field(None, description="TLS settings")
    headers: Dict[str, str] = Field(default_factory=dict, description="Default request headers")
    keepalive: Optional[bool] = Field(None, description="Reuse pooled connections")

    @field_validator("proxy", mode="before")
    @classmethod
    def _parse_proxy(cls, value: Any) -> Any:
        if isinstance(value, (str, httpx.URL)):
            return ProxyConfig.from_url(value)
        return value

    @field_validator("ssl_options", mode="before")
    @classmethod
    def _parse_ssl_options(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return SSLOptions(**value)
        return value

    def site_url(self) -> httpx.URL:
        """Parsed site URL.

        Raises:
            ConfigurationError: If no site is configured or it has no host
        """
        if not self.site:
            raise ConfigurationError("No site configured")
        url = httpx.URL(self.site)
        if not url.host:
            raise ConfigurationError(f"Site URL has no host: {self.site}")
        return url

    def credentials(self) -> Optional[Tuple[str, str]]:
        if self.user is None and self.password is None:
            return None
        return (self.user or "", self.password or "")

    def effective_timeout(self) -> Optional[float]:
        """Timeout set on this config, else the environment's, else the default."""
        if "timeout" in self.model_fields_set:
            return self.timeout
        return parse_timeout(os.getenv(TIMEOUT_ENV_VAR))
