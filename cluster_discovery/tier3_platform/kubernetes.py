"""
cluster_discovery.tier3_platform.kubernetes
────────────────────────────────────────────
Typed, read-only accessor for the Kubernetes API server. Each call is a
single authenticated GET, wrapped individually by the retry executor, with
the JSON body validated into the wire models.

Auth: bearer token from configuration, else the pod's service-account token
(read once). TLS trust: configured CA PEM, else the service-account CA,
else system trust.

Backed by: httpx (sync client, one connection pool per discovery strategy).
"""
from __future__ import annotations

import ssl
from pathlib import Path
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from cluster_discovery.tier0_core.config import SERVICE_ACCOUNT_CA, SERVICE_ACCOUNT_TOKEN, DiscoveryConfig
from cluster_discovery.tier0_core.errors import (
    ConfigurationError,
    NotFoundError,
    RateLimitError,
    UpstreamError,
    ValidationError,
)
from cluster_discovery.tier0_core.http import error_for_status, is_success
from cluster_discovery.tier0_core.logging import get_logger
from cluster_discovery.tier0_core.redact import scrub_string
from cluster_discovery.tier1_runtime.retry import RetryExecutor
from cluster_discovery.tier3_platform.models import V1Endpoints, V1EndpointsList, V1Node, V1Pod

M = TypeVar("M", bound=BaseModel)

logger = get_logger(__name__)

# Newer clusters publish topology.*; older ones only the beta failure-domain labels.
ZONE_LABELS = (
    "topology.kubernetes.io/zone",
    "failure-domain.beta.kubernetes.io/zone",
    "topology.kubernetes.io/region",
    "failure-domain.beta.kubernetes.io/region",
)

_DEFAULT_TIMEOUT = 10.0


class KubernetesClient:
    """
    Read-only Kubernetes API client scoped to one namespace.

    Usage::

        client = KubernetesClient.from_config(config)
        endpoints = client.endpoints_by_name("my-release-hazelcast")
        client.close()
    """

    def __init__(
        self,
        namespace: str,
        master_url: str,
        *,
        api_token: str | None = None,
        ca_certificate: str | None = None,
        retry: RetryExecutor | None = None,
        token_file: Path = SERVICE_ACCOUNT_TOKEN,
        ca_file: Path = SERVICE_ACCOUNT_CA,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.namespace = namespace
        self._token = api_token or None
        self._token_file = token_file
        self._retry = retry or RetryExecutor()
        self._http = httpx.Client(
            base_url=master_url.rstrip("/"),
            timeout=timeout,
            verify=_build_verify(ca_certificate, ca_file) if transport is None else True,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_config(
        cls,
        config: DiscoveryConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> "KubernetesClient":
        return cls(
            namespace=config.namespace,
            master_url=config.kubernetes_master_url,
            api_token=config.api_token.get_secret_value() if config.api_token else None,
            ca_certificate=config.ca_certificate,
            retry=RetryExecutor(max_attempts=config.api_max_retries),
            transport=transport,
        )

    # ── Endpoints ─────────────────────────────────────────────────────────────

    def endpoints_by_name(self, name: str) -> V1Endpoints | None:
        """Endpoints object of one service, or None if the service has none."""
        try:
            return self._get(f"/api/v1/namespaces/{self.namespace}/endpoints/{name}", V1Endpoints)
        except NotFoundError:
            logger.debug("endpoints.not_found", service=name, namespace=self.namespace)
            return None

    def endpoints_by_label(self, label: str, value: str | None) -> list[V1Endpoints]:
        selector = f"{label}={value}" if value else label
        return self._get(
            f"/api/v1/namespaces/{self.namespace}/endpoints",
            V1EndpointsList,
            params={"labelSelector": selector},
        ).items

    def endpoints(self) -> list[V1Endpoints]:
        """Every Endpoints object in the namespace."""
        return self._get(f"/api/v1/namespaces/{self.namespace}/endpoints", V1EndpointsList).items

    # ── Topology ──────────────────────────────────────────────────────────────

    def zone(self, pod_name: str) -> str | None:
        """Zone (or, failing that, region) label of the node the pod is scheduled on."""
        pod = self._get(f"/api/v1/namespaces/{self.namespace}/pods/{pod_name}", V1Pod)
        node_name = pod.spec.node_name
        if not node_name:
            return None
        node = self._get(f"/api/v1/nodes/{node_name}", V1Node)
        labels = node.metadata.labels
        for key in ZONE_LABELS:
            if labels.get(key):
                return labels[key]
        return None

    def close(self) -> None:
        self._http.close()

    # ── Transport ─────────────────────────────────────────────────────────────

    def _get(self, path: str, model: type[M], params: dict[str, str] | None = None) -> M:
        def call() -> M:
            return _parse(model, self._request(path, params), path)

        return self._retry.execute(call)

    def _request(self, path: str, params: dict[str, str] | None) -> Any:
        headers = {"Authorization": f"Bearer {self._bearer_token()}"}
        try:
            response = self._http.get(path, params=params, headers=headers)
        except httpx.TransportError as exc:
            raise UpstreamError(
                user_message="Kubernetes API unreachable.",
                detail=scrub_string(f"GET {path} failed: {exc}"),
                path=path,
            ) from exc

        if not is_success(response.status_code):
            error_cls = error_for_status(response.status_code)
            extra: dict[str, Any] = {}
            if error_cls is RateLimitError:
                extra["retry_after"] = _retry_after(response)
            raise error_cls(
                user_message=f"Kubernetes API answered {response.status_code}.",
                detail=scrub_string(
                    f"GET {path} -> {response.status_code}: {response.text[:200]}"
                ),
                path=path,
                status=response.status_code,
                **extra,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ValidationError(
                user_message="Kubernetes API returned a non-JSON body.",
                detail=f"GET {path} returned a non-JSON body",
                path=path,
            ) from exc

    def _bearer_token(self) -> str:
        if self._token is None:
            self._token = _read_token(self._token_file)
        return self._token


def _retry_after(response: httpx.Response) -> int | None:
    # Only the delta-seconds form; an HTTP-date is left to the backoff.
    value = response.headers.get("Retry-After", "").strip()
    return int(value) if value.isdigit() else None


def _parse(model: type[M], payload: Any, path: str) -> M:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        fields = {
            ".".join(str(loc) for loc in err["loc"]): err["msg"]
            for err in exc.errors()
        }
        raise ValidationError(
            user_message="Unexpected Kubernetes API payload.",
            detail=f"GET {path} returned an unexpected payload",
            fields=fields,
        ) from exc


def _read_token(token_file: Path) -> str:
    try:
        token = token_file.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigurationError(
            user_message="No Kubernetes API token configured.",
            detail=f"No api token configured and {token_file} could not be read: {exc}",
        ) from exc
    if not token:
        raise ConfigurationError(
            user_message="No Kubernetes API token configured.",
            detail=f"Service-account token file {token_file} is empty",
        )
    return token


def _build_verify(ca_certificate: str | None, ca_file: Path) -> ssl.SSLContext | bool:
    try:
        if ca_certificate:
            return ssl.create_default_context(cadata=ca_certificate)
        if ca_file.is_file():
            return ssl.create_default_context(cafile=str(ca_file))
    except ssl.SSLError as exc:
        raise ConfigurationError(
            user_message="Invalid Kubernetes CA certificate.",
            detail=f"Could not load CA certificate: {exc}",
        ) from exc
    return True


__all__ = ["KubernetesClient", "ZONE_LABELS"]
