"""Consul HTTP API client and request types."""

from .client import ConsulClient
from .models import CatalogServicesRequest, ConsistencyMode, HealthServicesRequest, QueryParams

__all__ = [
    "CatalogServicesRequest",
    "ConsistencyMode",
    "ConsulClient",
    "HealthServicesRequest",
    "QueryParams",
]
