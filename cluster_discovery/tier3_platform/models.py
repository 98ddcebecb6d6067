"""
cluster_discovery.tier3_platform.models
────────────────────────────────────────
Two layers of types:

* Wire models (``V1*``): the subset of the Kubernetes core/v1 JSON the
  resolvers read, validated with Pydantic v2. Missing lists are empty lists,
  unknown address properties are preserved.
* Discovery types (``Endpoint``, ``EndpointAddress``, ``DiscoveryNode``):
  the normalized, immutable view handed from resolvers to callers.
"""
from __future__ import annotations

import ipaddress
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PORT = 5701
# Per-address property that overrides the port published on the subset.
SERVICE_PORT_PROPERTY = "cluster-service-port"
# Checked in order; the hazelcast- key is what existing deployments annotate.
SERVICE_PORT_PROPERTIES = (SERVICE_PORT_PROPERTY, "hazelcast-service-port")


# ── Wire models ───────────────────────────────────────────────────────────────

class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class V1ObjectMeta(_Wire):
    name: str | None = None
    namespace: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)


class V1ObjectReference(_Wire):
    kind: str | None = None
    name: str | None = None
    namespace: str | None = None


class V1EndpointAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    ip: str | None = None
    hostname: str | None = None
    node_name: str | None = Field(default=None, alias="nodeName")
    target_ref: V1ObjectReference | None = Field(default=None, alias="targetRef")

    @property
    def additional_properties(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class V1EndpointPort(_Wire):
    name: str | None = None
    port: int
    protocol: str | None = None


class V1EndpointSubset(_Wire):
    addresses: list[V1EndpointAddress] = Field(default_factory=list)
    not_ready_addresses: list[V1EndpointAddress] = Field(
        default_factory=list, alias="notReadyAddresses"
    )
    ports: list[V1EndpointPort] = Field(default_factory=list)


class V1Endpoints(_Wire):
    metadata: V1ObjectMeta = Field(default_factory=V1ObjectMeta)
    subsets: list[V1EndpointSubset] = Field(default_factory=list)


class V1EndpointsList(_Wire):
    items: list[V1Endpoints] = Field(default_factory=list)


class V1PodSpec(_Wire):
    node_name: str | None = Field(default=None, alias="nodeName")


class V1Pod(_Wire):
    metadata: V1ObjectMeta = Field(default_factory=V1ObjectMeta)
    spec: V1PodSpec = Field(default_factory=V1PodSpec)


class V1Node(_Wire):
    metadata: V1ObjectMeta = Field(default_factory=V1ObjectMeta)


# ── Discovery types ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Address:
    """A host/port pair a cluster member can be reached at."""
    host: str
    port: int

    def __str__(self) -> str:
        try:
            if ipaddress.ip_address(self.host).version == 6:
                return f"[{self.host}]:{self.port}"
        except ValueError:
            pass
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class EndpointAddress:
    ip: str
    port: int | None = None


@dataclass(frozen=True)
class Endpoint:
    """One backend reported by the platform, with its readiness flag."""
    private_address: EndpointAddress | None
    public_address: EndpointAddress | None = None
    ready: bool = True
    additional_properties: Mapping[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class DiscoveryNode:
    """A candidate cluster member. Private address is always set.

    Hashes on its addresses only, so nodes can be de-duplicated in a set.
    """
    private_address: Address
    public_address: Address | None = None
    properties: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if self.private_address is None:
            raise ValueError("DiscoveryNode requires a private address")
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    def as_dict(self) -> dict[str, Any]:
        return {
            "private_address": str(self.private_address),
            "public_address": str(self.public_address) if self.public_address else None,
            "properties": dict(self.properties),
        }


# ── Wire → discovery conversion ───────────────────────────────────────────────

def _subset_port(subset: V1EndpointSubset) -> int | None:
    # Only unambiguous when the subset publishes exactly one port.
    if len(subset.ports) == 1:
        return subset.ports[0].port
    return None


def _address_port(address: V1EndpointAddress, subset_port: int | None) -> int | None:
    for key in SERVICE_PORT_PROPERTIES:
        override = address.additional_properties.get(key)
        if override is None:
            continue
        try:
            return int(override)
        except (TypeError, ValueError):
            pass
    return subset_port


def _to_endpoint(address: V1EndpointAddress, subset_port: int | None, ready: bool) -> Endpoint:
    private = None
    if address.ip:
        private = EndpointAddress(ip=address.ip, port=_address_port(address, subset_port))
    return Endpoint(
        private_address=private,
        ready=ready,
        additional_properties=address.additional_properties,
    )


def to_endpoints(endpoints: V1Endpoints | None) -> list[Endpoint]:
    """Flatten every subset of an Endpoints object; not-ready addresses keep ready=False."""
    if endpoints is None:
        return []
    result: list[Endpoint] = []
    for subset in endpoints.subsets:
        port = _subset_port(subset)
        result.extend(_to_endpoint(a, port, ready=True) for a in subset.addresses)
        result.extend(_to_endpoint(a, port, ready=False) for a in subset.not_ready_addresses)
    return result


__all__ = [
    "DEFAULT_PORT",
    "SERVICE_PORT_PROPERTY",
    "SERVICE_PORT_PROPERTIES",
    "V1ObjectMeta",
    "V1EndpointAddress",
    "V1EndpointPort",
    "V1EndpointSubset",
    "V1Endpoints",
    "V1EndpointsList",
    "V1Pod",
    "V1Node",
    "Address",
    "EndpointAddress",
    "Endpoint",
    "DiscoveryNode",
    "to_endpoints",
]
