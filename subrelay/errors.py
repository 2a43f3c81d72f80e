"""
Error taxonomy for the relay pipeline.
Every RelayError is terminal for the request that raised it and is
surfaced to the client as a 500 with the error text as the body.
"""


class RelayError(Exception):
    """Base class for failures while serving a subscription request."""


class InvalidProxyConfig(RelayError):
    """The configured proxy string is not a usable proxy URL."""


class TransportError(RelayError):
    """The outbound connection or transfer failed."""


class UpstreamError(RelayError):
    """The upstream server answered with something other than 200."""

    def __init__(self, status: str):
        super().__init__(f"server returned non-200 status: {status}")
        self.status = status


class DecodeError(RelayError):
    """The fetched body is not valid URL-safe base64."""


class ConfigError(Exception):
    """Startup configuration is missing or malformed."""
