"""
cluster_discovery.tier3_platform.discovery
───────────────────────────────────────────
Discovery strategy: the object a cluster membership layer talks to.

    strategy = KubernetesDiscoveryStrategy(load_config())
    strategy.start()
    nodes = strategy.discover_nodes()          # call as often as needed
    meta = strategy.discover_local_metadata()  # {"partition.group.zone": "eu-west-1a"}
    strategy.destroy()

Lifecycle: CONSTRUCTED → STARTED → DESTROYED. The resolver is chosen once in
the constructor (DNS mode → DnsEndpointResolver, API mode → the by-name /
by-label / namespace cascade) and never replaced. Resolution is synchronous;
no background thread is owned here.
"""
from __future__ import annotations

import enum
import os
import socket
from collections.abc import Callable, Mapping
from typing import Any

from cluster_discovery.tier0_core.config import DiscoveryConfig, Mode
from cluster_discovery.tier0_core.logging import get_logger
from cluster_discovery.tier3_platform.address import AddressMapper
from cluster_discovery.tier3_platform.dns_client import DnsClient
from cluster_discovery.tier3_platform.kubernetes import KubernetesClient
from cluster_discovery.tier3_platform.models import DiscoveryNode
from cluster_discovery.tier3_platform.resolvers import (
    DnsEndpointResolver,
    EndpointResolver,
    build_api_resolver,
)

ZONE_METADATA_KEY = "partition.group.zone"
UNKNOWN_ZONE = "unknown"

logger = get_logger(__name__)


class StrategyState(enum.Enum):
    CONSTRUCTED = "constructed"
    STARTED = "started"
    DESTROYED = "destroyed"


class KubernetesDiscoveryStrategy:
    """Owns one resolver, the platform client and the zone cache."""

    def __init__(
        self,
        config: DiscoveryConfig,
        *,
        client: KubernetesClient | None = None,
        dns_client: DnsClient | None = None,
        address_mapper: AddressMapper | None = None,
        environ: Mapping[str, str] | None = None,
        hostname: Callable[[], str] = socket.gethostname,
    ) -> None:
        self.config = config
        self._environ = os.environ if environ is None else environ
        self._hostname = hostname
        self._zone: str | None = None
        self.state = StrategyState.CONSTRUCTED

        logger.info("discovery.config", **config.summary())

        # The client is also used for zone lookups, so API credentials are
        # wired up in DNS mode too; the token is only read on first use.
        self.client = client or KubernetesClient.from_config(config)
        self.resolver = self._build_resolver(dns_client, address_mapper)
        logger.info(
            "discovery.activated",
            mode=config.effective_mode.value,
            resolver=type(self.resolver).__name__,
        )

    def _build_resolver(
        self,
        dns_client: DnsClient | None,
        address_mapper: AddressMapper | None,
    ) -> EndpointResolver:
        if self.config.effective_mode is Mode.DNS:
            return DnsEndpointResolver(
                self.config.service_dns or "",
                self.config.service_port,
                self.config.service_dns_timeout,
                dns_client=dns_client,
                address_mapper=address_mapper,
            )
        return build_api_resolver(self.config, self.client, address_mapper)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        if self.state is not StrategyState.CONSTRUCTED:
            return
        self.resolver.start()
        self.state = StrategyState.STARTED

    def destroy(self) -> None:
        if self.state is StrategyState.DESTROYED:
            return
        self.resolver.destroy()
        if self.config.effective_mode is Mode.DNS:
            # API resolvers close the shared client themselves.
            self.client.close()
        self._zone = None
        self.state = StrategyState.DESTROYED

    # ── Discovery ─────────────────────────────────────────────────────────────

    def discover_nodes(self) -> list[DiscoveryNode]:
        """Current peer set. Errors that survive the retry policy propagate."""
        return self.resolver.resolve()

    def discover_local_metadata(self) -> dict[str, Any]:
        zone = self._zone
        if zone is None:
            # Two racing callers may both compute it; they store the same value.
            zone = self._discover_zone()
            self._zone = zone
        return {ZONE_METADATA_KEY: zone}

    def _discover_zone(self) -> str:
        try:
            pod_name = (
                self._environ.get("POD_NAME")
                or self._environ.get("HOSTNAME")
                or self._hostname()
            )
            if pod_name:
                zone = self.client.zone(pod_name)
                if zone:
                    logger.info("zone.discovered", zone=zone, pod=pod_name)
                    return zone
        except Exception as exc:
            # Zone awareness is best effort and must never block startup.
            logger.debug("zone.lookup_failed", error=str(exc), error_type=type(exc).__name__)
        logger.warning("zone.unavailable", detail="Cannot fetch the current zone, zone awareness is disabled")
        return UNKNOWN_ZONE


__all__ = [
    "KubernetesDiscoveryStrategy",
    "StrategyState",
    "ZONE_METADATA_KEY",
    "UNKNOWN_ZONE",
]
