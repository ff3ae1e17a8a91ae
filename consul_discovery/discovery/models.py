"""Data model for endpoints resolved from Consul health entries."""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class Endpoint:
    """One healthy network location of a service.

    Metadata is a read-only mapping and tags are a tuple; the same instances
    are handed to callers and kept in the backup.
    """

    service_id: str
    host: str
    port: int
    instance_id: str = ""
    secure: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict, hash=False)
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def scheme(self) -> str:
        return "https" if self.secure else "http"

    @property
    def uri(self) -> str:
        """e.g. 'http://10.0.0.1:8080' or 'https://[::1]:8443'."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_id": self.service_id,
            "instance_id": self.instance_id,
            "host": self.host,
            "port": self.port,
            "secure": self.secure,
            "uri": self.uri,
            "metadata": dict(self.metadata),
            "tags": list(self.tags),
        }


def endpoint_from_health_service(entry: dict[str, Any], service_id: str) -> Endpoint:
    """Translate one /v1/health/service entry into an Endpoint."""
    service = entry.get("Service") or {}
    metadata = service.get("Meta") or {}
    return Endpoint(
        service_id=service_id,
        host=find_host(entry),
        port=int(service.get("Port") or 0),
        instance_id=service.get("ID") or "",
        secure=_is_secure(metadata),
        metadata=metadata,
        tags=tuple(service.get("Tags") or ()),
    )


def find_host(entry: dict[str, Any]) -> str:
    """Service address, falling back to the node address and then the node name."""
    service = entry.get("Service") or {}
    node = entry.get("Node") or {}
    if service.get("Address"):
        return _normalize_address(service["Address"])
    if node.get("Address"):
        return _normalize_address(node["Address"])
    return node.get("Node") or ""


def _normalize_address(address: str) -> str:
    try:
        ip = ipaddress.ip_address(address.strip("[]"))
    except ValueError:
        return address  # hostname
    if ip.version == 6:
        return ip.compressed
    return address


def _is_secure(metadata: Mapping[str, str]) -> bool:
    return str(metadata.get("secure", "")).lower() == "true"
