"""Custom exception hierarchy for the Consul discovery client."""


class DiscoveryError(Exception):
    """Base exception for all discovery client errors."""


class ConfigError(DiscoveryError):
    """Invalid or missing configuration."""


class ConsulAPIError(DiscoveryError):
    """Error communicating with the Consul HTTP API."""

    def __init__(self, message: str, status_code: int | None = None, response_body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
