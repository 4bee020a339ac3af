"""Exception hierarchy for resource-keepalive.

Only two transport failures are translated into domain errors: elapsed-time
failures and TLS failures. Everything else raised by the transport propagates
unchanged.
"""


class ResourceKeepaliveError(Exception):
    """Base exception for all resource-keepalive errors."""
    pass


class ConfigurationError(ResourceKeepaliveError):
    """Error in configuration (missing site, invalid values, etc.)."""
    pass


class ConnectionError(ResourceKeepaliveError):
    """Base error for failures while talking to the remote endpoint."""
    pass


class TimeoutError(ConnectionError):
    """The transport gave up waiting on the remote endpoint."""
    pass


class SSLError(ConnectionError):
    """TLS handshake or certificate verification failed."""
    pass
