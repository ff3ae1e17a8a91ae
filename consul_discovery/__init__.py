"""Consul service discovery client with last-known-good fallback."""

from .discovery.backup import InstanceBackup
from .discovery.client import ConsulDiscoveryClient
from .discovery.models import Endpoint
from .discovery.reactive import ConsulReactiveDiscoveryClient

__all__ = [
    "ConsulDiscoveryClient",
    "ConsulReactiveDiscoveryClient",
    "Endpoint",
    "InstanceBackup",
]
