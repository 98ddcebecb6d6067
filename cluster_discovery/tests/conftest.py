"""
cluster_discovery test configuration.

No test touches the network: the Kubernetes API is served by
``httpx.MockTransport`` and DNS by an in-memory resolver. Backoff sleeps are
recorded instead of slept.
"""
from __future__ import annotations

import os
from typing import Any, Callable

import httpx
import pytest

# ── Keep the host environment out of config tests ─────────────────────────
# These must be cleared before DiscoveryConfig reads the environment.

for _key in list(os.environ):
    if _key.startswith("KUBERNETES_") or _key in ("OPENSHIFT_BUILD_NAMESPACE", "POD_NAME"):
        os.environ.pop(_key)

os.environ.setdefault("CLUSTER_DISCOVERY_LOG_LEVEL", "DEBUG")


# ── Endpoint payload builders ─────────────────────────────────────────────

def endpoints_json(
    name: str,
    ready: list[str] = (),
    not_ready: list[str] = (),
    ports: list[int] = (),
    namespace: str = "default",
    **address_properties: Any,
) -> dict[str, Any]:
    """Build a core/v1 Endpoints object the way the API server returns it."""
    def _address(ip: str) -> dict[str, Any]:
        return {"ip": ip, "targetRef": {"kind": "Pod", "name": f"pod-{ip}"}, **address_properties}

    subset: dict[str, Any] = {}
    if ready:
        subset["addresses"] = [_address(ip) for ip in ready]
    if not_ready:
        subset["notReadyAddresses"] = [_address(ip) for ip in not_ready]
    if ports:
        subset["ports"] = [{"port": p, "protocol": "TCP"} for p in ports]
    return {
        "kind": "Endpoints",
        "metadata": {"name": name, "namespace": namespace},
        "subsets": [subset] if subset else [],
    }


# ── Fakes ──────────────────────────────────────────────────────────────────

class FakeKubernetesClient:
    """Stands in for KubernetesClient; answers from canned wire objects."""

    def __init__(
        self,
        by_name: dict[str, dict] | None = None,
        by_label: list[dict] | None = None,
        namespace: list[dict] | None = None,
        zone: str | Exception | None = None,
    ) -> None:
        from cluster_discovery.tier3_platform.models import V1Endpoints

        self._by_name = {k: V1Endpoints.model_validate(v) for k, v in (by_name or {}).items()}
        self._by_label = [V1Endpoints.model_validate(v) for v in by_label or []]
        self._namespace = [V1Endpoints.model_validate(v) for v in namespace or []]
        self._zone = zone
        self.calls: list[tuple] = []
        self.close_count = 0

    def endpoints_by_name(self, name):
        self.calls.append(("by_name", name))
        return self._by_name.get(name)

    def endpoints_by_label(self, label, value):
        self.calls.append(("by_label", label, value))
        return list(self._by_label)

    def endpoints(self):
        self.calls.append(("namespace",))
        return list(self._namespace)

    def zone(self, pod_name):
        self.calls.append(("zone", pod_name))
        if isinstance(self._zone, Exception):
            raise self._zone
        return self._zone

    def close(self):
        self.close_count += 1


class _Record:
    def __init__(self, address: str) -> None:
        self.address = address


class FakeDnsResolver:
    """Mimics ``dns.resolver.Resolver.resolve`` for A/AAAA lookups."""

    def __init__(self, records: dict[str, list[str]] | None = None, error: Exception | None = None) -> None:
        self.records = records or {}
        self.error = error
        self.queries: list[tuple[str, str]] = []

    def resolve(self, name, record_type, lifetime=None, search=None):
        import dns.resolver

        self.queries.append((name, record_type))
        if self.error is not None:
            raise self.error
        answers = self.records.get(record_type)
        if not answers:
            raise dns.resolver.NoAnswer()
        return [_Record(a) for a in answers]


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture
def sleeps() -> list[float]:
    """Backoff delays recorded by a RetryExecutor built with ``sleep=sleeps.append``."""
    return []


@pytest.fixture
def retry(sleeps):
    from cluster_discovery.tier1_runtime.retry import RetryExecutor
    return RetryExecutor(sleep=sleeps.append)


@pytest.fixture
def k8s_client(retry) -> Callable[..., Any]:
    """Factory: KubernetesClient whose HTTP calls go to *handler*."""
    from cluster_discovery.tier3_platform.kubernetes import KubernetesClient

    created = []

    def _make(handler, **kwargs):
        kwargs.setdefault("api_token", "test-token")
        kwargs.setdefault("retry", retry)
        client = KubernetesClient(
            "default",
            "https://kubernetes.test",
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
        created.append(client)
        return client

    yield _make
    for client in created:
        client.close()


@pytest.fixture
def make_config():
    """Factory: DiscoveryConfig pinned to the ``default`` namespace."""
    from cluster_discovery.tier0_core.config import load_config

    def _make(**overrides):
        overrides.setdefault("namespace", "default")
        overrides.setdefault("api_token", "test-token")
        return load_config(**overrides)

    return _make
