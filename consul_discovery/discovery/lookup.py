"""Single-service lookup shared by the blocking and the async discovery clients."""

from __future__ import annotations

import logging

from ..config import DiscoveryConfig
from ..consul.models import ConsistencyMode, HealthServicesRequest, QueryParams
from . import RegistryGateway
from .backup import InstanceBackup
from .models import Endpoint, endpoint_from_health_service

logger = logging.getLogger(__name__)


class InstanceLookup:
    """Build the health request, call the registry, translate and back up the result.

    ``fetch`` never raises: a registry failure is logged and converted into the
    fallback value chosen by ``fallback``.
    """

    def __init__(self, gateway: RegistryGateway, config: DiscoveryConfig, backup: InstanceBackup):
        self._gateway = gateway
        self._config = config
        self._backup = backup

    @property
    def default_query_params(self) -> QueryParams:
        """Query params carrying the configured consistency mode."""
        return QueryParams(ConsistencyMode(self._config.consistency_mode))

    def build_request(self, service_id: str, query_params: QueryParams) -> HealthServicesRequest:
        # Only the query params are caller-controlled; passing, token and tags come from config
        tags = self._config.query_tags_for_service(service_id)
        return HealthServicesRequest(
            passing=self._config.query_passing,
            query_params=query_params,
            token=self._config.acl_token or None,
            tags=tuple(tags) if tags is not None else None,
        )

    def fetch(self, service_id: str, query_params: QueryParams) -> list[Endpoint]:
        try:
            request = self.build_request(service_id, query_params)
            entries = self._gateway.health_services(service_id, request)
            instances = [endpoint_from_health_service(entry, service_id) for entry in entries or []]
        except Exception:
            logger.error("Error getting instances from Consul", exc_info=True, extra={"service": service_id})
            return self.fallback(service_id)

        if self._config.backup:
            self._backup.put(service_id, instances)
        logger.debug("Found %d instances of %s", len(instances), service_id, extra={"service": service_id})
        return instances

    def fallback(self, service_id: str) -> list[Endpoint]:
        """The result to return when the registry call for ``service_id`` failed."""
        if not self._config.backup:
            return []
        cached = self._backup.get(service_id)
        if cached is None:
            return []
        logger.warning(
            "Serving %d backed-up instances of %s", len(cached), service_id,
            extra={"service": service_id, "instances": len(cached), "cached": True},
        )
        return cached
