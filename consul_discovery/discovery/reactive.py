"""Async discovery client: lazy endpoint streams resolved on a worker pool."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from concurrent.futures import ThreadPoolExecutor

from ..config import DiscoveryConfig
from ..consul.models import CatalogServicesRequest, QueryParams
from . import RegistryGateway
from .backup import InstanceBackup
from .lookup import InstanceLookup
from .models import Endpoint

logger = logging.getLogger(__name__)


class ConsulReactiveDiscoveryClient:
    """Async counterpart of ConsulDiscoveryClient.

    Each call returns an async iterator that does nothing until it is first
    iterated. The registry call then runs on a bounded thread pool, so the
    event loop is never blocked, and the results are yielded one by one.
    Registry errors never reach the consumer: instance lookups fall back to
    the backup exactly like the blocking client, service listing falls back
    to nothing.
    Iterating ``get_instances`` after ``close()`` raises the executor's
    RuntimeError, since that is a usage error rather than a registry failure.

    Usage:
        async for endpoint in client.get_instances("orders"):
            ...
    """

    def __init__(
        self,
        gateway: RegistryGateway,
        config: DiscoveryConfig,
        backup: InstanceBackup | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        self._gateway = gateway
        self._config = config
        self._backup = backup if backup is not None else InstanceBackup()
        self._lookup = InstanceLookup(gateway, config, self._backup)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.max_workers,
            thread_name_prefix="consul-discovery",
        )

    @property
    def backup(self) -> InstanceBackup:
        return self._backup

    def description(self) -> str:
        return "Consul Reactive Discovery Client"

    async def get_instances(self, service_id: str) -> AsyncIterator[Endpoint]:
        """Stream the healthy endpoints of ``service_id`` in registry order."""
        loop = asyncio.get_running_loop()
        # The backup is written inside fetch once the whole list is translated,
        # so a consumer that stops early never leaves a partial snapshot.
        instances = await loop.run_in_executor(
            self._executor, self._lookup.fetch, service_id, QueryParams.DEFAULT,
        )
        for instance in instances:
            yield instance

    async def get_services(self) -> AsyncIterator[str]:
        """Stream registered service names; yields nothing if Consul is unavailable."""
        loop = asyncio.get_running_loop()
        try:
            services = await loop.run_in_executor(self._executor, self._fetch_services)
        except Exception:
            logger.error("Error getting services from Consul", exc_info=True)
            return
        for service_id in services:
            yield service_id

    def get_order(self) -> int:
        return self._config.order

    def close(self) -> None:
        """Shut down the worker pool if this client created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def _fetch_services(self) -> list[str]:
        request = CatalogServicesRequest(query_params=QueryParams.DEFAULT, token=self._config.acl_token or None)
        services = self._gateway.catalog_services(request)
        if services is None:
            return []
        return list(services)
