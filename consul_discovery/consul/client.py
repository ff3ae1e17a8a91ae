"""REST client for the Consul agent HTTP API (read-only health and catalog calls)."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests

from ..config import ConsulConfig
from ..exceptions import ConsulAPIError
from .models import CatalogServicesRequest, HealthServicesRequest

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Consul-Token"


class ConsulClient:
    """Thin wrapper around the Consul v1 HTTP API."""

    def __init__(self, config: ConsulConfig, session: requests.Session | None = None):
        self._base = f"{config.base_url.rstrip('/')}/v1"
        self._session = session or requests.Session()
        self._session.headers["Accept"] = "application/json"
        self._session.verify = config.verify_ssl
        self._timeout = config.timeout

    # ── Health ──────────────────────────────────────────────────────

    def health_services(self, service_id: str, request: HealthServicesRequest) -> list[dict[str, Any]]:
        """Return the raw health entries (Node/Service/Checks) registered for a service."""
        resp = self._get(
            f"/health/service/{quote(service_id, safe='')}",
            params=request.to_params(),
            token=request.token,
        )
        return self._json(resp) or []

    # ── Catalog ─────────────────────────────────────────────────────

    def catalog_services(self, request: CatalogServicesRequest) -> dict[str, list[str]]:
        """Return a mapping of service name to its registered tags."""
        resp = self._get("/catalog/services", params=request.to_params(), token=request.token)
        return self._json(resp) or {}

    # ── Status ──────────────────────────────────────────────────────

    def status_leader(self) -> str:
        """Return the address of the current Raft leader."""
        resp = self._get("/status/leader")
        return self._json(resp)

    # ── Internal HTTP helpers ───────────────────────────────────────

    def _get(self, path: str, params: dict | None = None, token: str | None = None) -> requests.Response:
        headers = {TOKEN_HEADER: token} if token else None
        return self._request("GET", path, params=params, headers=headers)

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise ConsulAPIError(
                f"Invalid JSON in response from {resp.url}",
                status_code=resp.status_code,
                response_body=resp.text,
            ) from exc

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self._base}{path}"
        kwargs.setdefault("timeout", self._timeout)
        logger.debug("%s %s params=%s", method, path, kwargs.get("params"))

        try:
            resp = self._session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise ConsulAPIError(f"Request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise ConsulAPIError(
                f"HTTP {resp.status_code} on {method} {path}: {resp.text}",
                status_code=resp.status_code,
                response_body=resp.text,
            )

        return resp
