"""
cluster_discovery.tier3_platform.resolvers
───────────────────────────────────────────
Endpoint resolvers. Each variant answers one question, "who are my peers
right now?", with a list of DiscoveryNodes:

  - DnsEndpointResolver          every A/AAAA record behind a service DNS name
  - ServiceNameEndpointResolver  endpoints of one named service
  - ServiceLabelEndpointResolver endpoints matching a label selector
  - NamespaceEndpointResolver    every endpoint in the namespace
  - FallbackEndpointResolver     first non-empty answer of a cascade

The strategy picks one resolver at construction and keeps it for life.
"""
from __future__ import annotations

import abc
from collections.abc import Iterable, Sequence

from cluster_discovery.tier0_core.config import DiscoveryConfig
from cluster_discovery.tier0_core.logging import get_logger
from cluster_discovery.tier3_platform.address import AddressMapper
from cluster_discovery.tier3_platform.dns_client import DnsClient
from cluster_discovery.tier3_platform.kubernetes import KubernetesClient
from cluster_discovery.tier3_platform.models import (
    DEFAULT_PORT,
    Address,
    DiscoveryNode,
    Endpoint,
    EndpointAddress,
    V1Endpoints,
    to_endpoints,
)

logger = get_logger(__name__)


class EndpointResolver(abc.ABC):
    """Common contract: ``resolve()`` plus optional lifecycle hooks."""

    def __init__(self, address_mapper: AddressMapper | None = None) -> None:
        self._map_address = address_mapper or AddressMapper()

    @abc.abstractmethod
    def resolve(self) -> list[DiscoveryNode]:
        """Return the current peers. Empty results are not errors."""

    def start(self) -> None:
        pass

    def destroy(self) -> None:
        pass


# ── DNS ───────────────────────────────────────────────────────────────────────

class DnsEndpointResolver(EndpointResolver):
    def __init__(
        self,
        service_dns: str,
        port: int = 0,
        timeout_seconds: float = 5,
        *,
        dns_client: DnsClient | None = None,
        address_mapper: AddressMapper | None = None,
    ) -> None:
        super().__init__(address_mapper)
        self.service_dns = service_dns
        self.port = port if port > 0 else DEFAULT_PORT
        self.timeout_seconds = timeout_seconds
        self._dns = dns_client or DnsClient()

    def resolve(self) -> list[DiscoveryNode]:
        nodes: list[DiscoveryNode] = []
        for ip in self._dns.resolve_all(self.service_dns, self.timeout_seconds):
            host = self._map_address(ip)
            if host is not None:
                nodes.append(DiscoveryNode(private_address=Address(host, self.port)))
        if not nodes:
            logger.warning("dns.no_peers", service_dns=self.service_dns)
        else:
            logger.debug("endpoints.resolved", source="dns", count=len(nodes))
        return nodes


# ── Kubernetes API ────────────────────────────────────────────────────────────

class KubernetesApiEndpointResolver(EndpointResolver):
    """Shared endpoint traversal for the API-backed variants."""

    source = "api"

    def __init__(
        self,
        client: KubernetesClient,
        port: int = 0,
        resolve_not_ready_addresses: bool = False,
        *,
        address_mapper: AddressMapper | None = None,
    ) -> None:
        super().__init__(address_mapper)
        self.client = client
        self.port = port
        self.resolve_not_ready_addresses = resolve_not_ready_addresses

    @abc.abstractmethod
    def fetch(self) -> Iterable[V1Endpoints]:
        """Platform query for this variant."""

    def resolve(self) -> list[DiscoveryNode]:
        nodes: list[DiscoveryNode] = []
        for endpoints in self.fetch():
            for endpoint in to_endpoints(endpoints):
                node = self._to_node(endpoint)
                if node is not None:
                    nodes.append(node)
        logger.debug("endpoints.resolved", source=self.source, count=len(nodes))
        return nodes

    def destroy(self) -> None:
        self.client.close()

    def _to_node(self, endpoint: Endpoint) -> DiscoveryNode | None:
        if not (endpoint.ready or self.resolve_not_ready_addresses):
            return None
        private = self._address(endpoint.private_address)
        if private is None:
            return None
        logger.debug("endpoints.node_found", address=str(private), ready=endpoint.ready)
        return DiscoveryNode(
            private_address=private,
            public_address=self._address(endpoint.public_address),
            properties=endpoint.additional_properties,
        )

    def _address(self, address: EndpointAddress | None) -> Address | None:
        if address is None:
            return None
        host = self._map_address(address.ip)
        if host is None:
            return None
        return Address(host, self._port(address))

    def _port(self, address: EndpointAddress) -> int:
        if self.port > 0:
            return self.port
        if address.port is not None:
            return address.port
        return DEFAULT_PORT


class ServiceNameEndpointResolver(KubernetesApiEndpointResolver):
    source = "service_name"

    def __init__(self, client: KubernetesClient, service_name: str, **kwargs) -> None:
        super().__init__(client, **kwargs)
        self.service_name = service_name

    def fetch(self) -> Iterable[V1Endpoints]:
        endpoints = self.client.endpoints_by_name(self.service_name)
        return [endpoints] if endpoints is not None else []


class ServiceLabelEndpointResolver(KubernetesApiEndpointResolver):
    source = "service_label"

    def __init__(
        self,
        client: KubernetesClient,
        label_name: str,
        label_value: str | None,
        **kwargs,
    ) -> None:
        super().__init__(client, **kwargs)
        self.label_name = label_name
        self.label_value = label_value

    def fetch(self) -> Iterable[V1Endpoints]:
        return self.client.endpoints_by_label(self.label_name, self.label_value)


class NamespaceEndpointResolver(KubernetesApiEndpointResolver):
    source = "namespace"

    def fetch(self) -> Iterable[V1Endpoints]:
        return self.client.endpoints()


# ── Cascade ───────────────────────────────────────────────────────────────────

class FallbackEndpointResolver(EndpointResolver):
    """
    Tries each resolver in order and returns the first non-empty result.
    Later queries run only when every earlier one came back empty.
    """

    def __init__(self, resolvers: Sequence[EndpointResolver]) -> None:
        super().__init__()
        if not resolvers:
            raise ValueError("FallbackEndpointResolver needs at least one resolver")
        self.resolvers = list(resolvers)

    def resolve(self) -> list[DiscoveryNode]:
        for resolver in self.resolvers:
            nodes = resolver.resolve()
            if nodes:
                return nodes
            logger.info("endpoints.empty_falling_back", resolver=type(resolver).__name__)
        return []

    def start(self) -> None:
        for resolver in self.resolvers:
            resolver.start()

    def destroy(self) -> None:
        # Variants usually share one client; close each distinct client once.
        closed: set[int] = set()
        for resolver in self.resolvers:
            client = getattr(resolver, "client", None)
            if client is not None:
                if id(client) in closed:
                    continue
                closed.add(id(client))
            resolver.destroy()


def build_api_resolver(
    config: DiscoveryConfig,
    client: KubernetesClient,
    address_mapper: AddressMapper | None = None,
) -> EndpointResolver:
    """
    API resolver for *config*: by-name or by-label when configured, followed
    by the namespace-wide lookup when nothing specific is configured or when
    ``fallback_to_namespace`` is on.
    """
    common = dict(
        port=config.service_port,
        resolve_not_ready_addresses=config.resolve_not_ready_addresses,
        address_mapper=address_mapper,
    )
    cascade: list[EndpointResolver] = []
    if config.service_name:
        cascade.append(ServiceNameEndpointResolver(client, config.service_name, **common))
    if config.service_label_name:
        cascade.append(
            ServiceLabelEndpointResolver(
                client, config.service_label_name, config.service_label_value, **common
            )
        )
    if not cascade or config.fallback_to_namespace:
        cascade.append(NamespaceEndpointResolver(client, **common))
    if len(cascade) == 1:
        return cascade[0]
    return FallbackEndpointResolver(cascade)


__all__ = [
    "EndpointResolver",
    "DnsEndpointResolver",
    "KubernetesApiEndpointResolver",
    "ServiceNameEndpointResolver",
    "ServiceLabelEndpointResolver",
    "NamespaceEndpointResolver",
    "FallbackEndpointResolver",
    "build_api_resolver",
]
