"""
cluster_discovery
─────────────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from cluster_discovery.tier0_core.config import DiscoveryConfig, Mode, default_namespace, load_config
from cluster_discovery.tier0_core.errors import (
    DiscoveryError,
    AuthError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    ConfigurationError,
    RateLimitError,
    UpstreamError,
)
from cluster_discovery.tier0_core.logging import get_logger

from cluster_discovery.tier1_runtime.retry import RetryExecutor, retry_policy

from cluster_discovery.tier3_platform.address import AddressMapper, map_address
from cluster_discovery.tier3_platform.dns_client import DnsClient
from cluster_discovery.tier3_platform.kubernetes import KubernetesClient
from cluster_discovery.tier3_platform.models import (
    DEFAULT_PORT,
    Address,
    DiscoveryNode,
    Endpoint,
    EndpointAddress,
)
from cluster_discovery.tier3_platform.resolvers import (
    EndpointResolver,
    DnsEndpointResolver,
    ServiceNameEndpointResolver,
    ServiceLabelEndpointResolver,
    NamespaceEndpointResolver,
    FallbackEndpointResolver,
)
from cluster_discovery.tier3_platform.discovery import KubernetesDiscoveryStrategy, ZONE_METADATA_KEY

__version__ = "0.1.0"
__all__ = [
    # config
    "DiscoveryConfig", "Mode", "default_namespace", "load_config",
    # errors
    "DiscoveryError", "AuthError", "ForbiddenError", "NotFoundError",
    "ValidationError", "ConfigurationError", "RateLimitError", "UpstreamError",
    # logging
    "get_logger",
    # retry
    "RetryExecutor", "retry_policy",
    # platform
    "AddressMapper", "map_address", "DnsClient", "KubernetesClient",
    # models
    "DEFAULT_PORT", "Address", "DiscoveryNode", "Endpoint", "EndpointAddress",
    # resolvers
    "EndpointResolver", "DnsEndpointResolver", "ServiceNameEndpointResolver",
    "ServiceLabelEndpointResolver", "NamespaceEndpointResolver", "FallbackEndpointResolver",
    # strategy
    "KubernetesDiscoveryStrategy", "ZONE_METADATA_KEY",
]
