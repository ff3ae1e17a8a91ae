"""Discovery package: the registry gateway Protocol and the two discovery clients."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..consul.models import CatalogServicesRequest, HealthServicesRequest


@runtime_checkable
class RegistryGateway(Protocol):
    """Protocol that the registry HTTP client must satisfy."""

    def health_services(self, service_id: str, request: HealthServicesRequest) -> list[dict[str, Any]] | None:
        """Return the raw health entries for a service."""
        ...

    def catalog_services(self, request: CatalogServicesRequest) -> dict[str, list[str]] | None:
        """Return a mapping of registered service names to their tags."""
        ...

    def status_leader(self) -> str:
        """Return the address of the current cluster leader."""
        ...
