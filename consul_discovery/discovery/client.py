"""Blocking discovery client backed by the Consul health and catalog APIs."""

from __future__ import annotations

import logging

from ..config import DiscoveryConfig
from ..consul.models import CatalogServicesRequest, QueryParams
from . import RegistryGateway
from .backup import InstanceBackup
from .lookup import InstanceLookup
from .models import Endpoint

logger = logging.getLogger(__name__)


class ConsulDiscoveryClient:
    """Resolves service names to healthy endpoints on the calling thread.

    Single-service lookups never raise; when Consul is unreachable they return
    the last successful result for that service (if ``backup`` is enabled) or
    an empty list. Listing services and probing the leader propagate errors.
    """

    def __init__(
        self,
        gateway: RegistryGateway,
        config: DiscoveryConfig,
        backup: InstanceBackup | None = None,
    ):
        self._gateway = gateway
        self._config = config
        self._backup = backup if backup is not None else InstanceBackup()
        self._lookup = InstanceLookup(gateway, config, self._backup)

    @property
    def backup(self) -> InstanceBackup:
        return self._backup

    def description(self) -> str:
        return "Consul Discovery Client"

    def get_instances(self, service_id: str, query_params: QueryParams | None = None) -> list[Endpoint]:
        """Healthy endpoints of ``service_id``.

        ``query_params`` overrides the consistency mode (and datacenter) only;
        the passing filter, ACL token and query tags always come from config.
        """
        if query_params is None:
            query_params = self._lookup.default_query_params
        return self._lookup.fetch(service_id, query_params)

    def get_all_instances(self) -> list[Endpoint]:
        """Endpoints of every registered service, concatenated in catalog order."""
        instances: list[Endpoint] = []
        for service_id in self.get_services():
            instances.extend(self._lookup.fetch(service_id, QueryParams.DEFAULT))
        return instances

    def get_services(self) -> list[str]:
        request = CatalogServicesRequest(query_params=QueryParams.DEFAULT, token=self._config.acl_token or None)
        services = self._gateway.catalog_services(request) or {}
        return list(services)

    def probe(self) -> None:
        """Raise if the Consul agent cannot be reached."""
        leader = self._gateway.status_leader()
        logger.debug("Consul leader is %s", leader)

    def get_order(self) -> int:
        return self._config.order
