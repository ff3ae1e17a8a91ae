"""Request shapes for the Consul health and catalog endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class ConsistencyMode(str, Enum):
    """Read-consistency setting applied by the Consul servers."""

    DEFAULT = "default"
    STALE = "stale"
    CONSISTENT = "consistent"


@dataclass(frozen=True)
class QueryParams:
    """The caller-overridable part of a registry query."""

    consistency_mode: ConsistencyMode = ConsistencyMode.DEFAULT
    datacenter: str | None = None

    DEFAULT: ClassVar[QueryParams]

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.datacenter:
            params["dc"] = self.datacenter
        # Consul only checks for the presence of these flags
        if self.consistency_mode is ConsistencyMode.STALE:
            params["stale"] = ""
        elif self.consistency_mode is ConsistencyMode.CONSISTENT:
            params["consistent"] = ""
        return params


QueryParams.DEFAULT = QueryParams()


@dataclass(frozen=True)
class HealthServicesRequest:
    passing: bool = False
    query_params: QueryParams = QueryParams.DEFAULT
    token: str | None = None
    tags: tuple[str, ...] | None = None

    def to_params(self) -> dict[str, str | list[str]]:
        params: dict[str, str | list[str]] = dict(self.query_params.to_params())
        if self.passing:
            params["passing"] = "true"
        if self.tags:
            params["tag"] = list(self.tags)
        return params


@dataclass(frozen=True)
class CatalogServicesRequest:
    query_params: QueryParams = QueryParams.DEFAULT
    token: str | None = None

    def to_params(self) -> dict[str, str]:
        return self.query_params.to_params()
