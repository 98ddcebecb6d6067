"""
cluster_discovery.tier0_core.config
────────────────────────────────────
Typed, immutable discovery configuration. Reads from .env → environment
variables → explicit keyword arguments. All fields are typed via Pydantic;
invalid combinations raise ConfigurationError from ``load_config`` so the
problem surfaces at startup, not on the first discovery cycle.

Stack: pydantic-settings
"""
from __future__ import annotations

import enum
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr, ValidationError as PydanticValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cluster_discovery.tier0_core.errors import ConfigurationError
from cluster_discovery.tier0_core.redact import redact_dict

SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
SERVICE_ACCOUNT_TOKEN = SERVICE_ACCOUNT_DIR / "token"
SERVICE_ACCOUNT_CA = SERVICE_ACCOUNT_DIR / "ca.crt"
SERVICE_ACCOUNT_NAMESPACE = SERVICE_ACCOUNT_DIR / "namespace"

DEFAULT_MASTER_URL = "https://kubernetes.default.svc"
DEFAULT_NAMESPACE = "default"
DEFAULT_DNS_TIMEOUT_SECONDS = 5
DEFAULT_API_RETRIES = 5


class Mode(str, enum.Enum):
    DNS = "DNS"
    API = "API"


# ── Namespace default ─────────────────────────────────────────────────────────

def default_namespace(
    environ: Mapping[str, str] | None = None,
    namespace_file: Path | None = SERVICE_ACCOUNT_NAMESPACE,
) -> str:
    """
    Namespace to query when none is configured.

    Order: KUBERNETES_NAMESPACE, OPENSHIFT_BUILD_NAMESPACE, the namespace the
    pod's service account lives in, then "default".
    """
    env = os.environ if environ is None else environ
    for key in ("KUBERNETES_NAMESPACE", "OPENSHIFT_BUILD_NAMESPACE"):
        value = env.get(key)
        if value:
            return value
    if namespace_file is not None:
        try:
            value = namespace_file.read_text(encoding="utf-8").strip()
        except OSError:
            value = ""
        if value:
            return value
    return DEFAULT_NAMESPACE


# ── Settings model ────────────────────────────────────────────────────────────

class DiscoveryConfig(BaseSettings):
    """
    Immutable snapshot of the discovery options. Built once at startup; every
    resolver holds a read-only reference to it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # ── Resolver selection ────────────────────────────────────────────────────
    mode: Mode | None = Field(default=None, alias="KUBERNETES_DISCOVERY_MODE")

    # ── DNS lookup ────────────────────────────────────────────────────────────
    service_dns: str | None = Field(default=None, alias="KUBERNETES_SERVICE_DNS")
    service_dns_timeout: int = Field(
        default=DEFAULT_DNS_TIMEOUT_SECONDS, alias="KUBERNETES_SERVICE_DNS_TIMEOUT", gt=0
    )

    # ── API lookup ────────────────────────────────────────────────────────────
    service_name: str | None = Field(default=None, alias="KUBERNETES_SERVICE_NAME")
    service_label_name: str | None = Field(default=None, alias="KUBERNETES_SERVICE_LABEL_NAME")
    service_label_value: str | None = Field(default="true", alias="KUBERNETES_SERVICE_LABEL_VALUE")
    namespace: str = Field(default_factory=default_namespace, alias="KUBERNETES_NAMESPACE")
    resolve_not_ready_addresses: bool = Field(
        default=False, alias="KUBERNETES_RESOLVE_NOT_READY_ADDRESSES"
    )
    fallback_to_namespace: bool = Field(default=True, alias="KUBERNETES_FALLBACK_TO_NAMESPACE")

    # ── Ports ─────────────────────────────────────────────────────────────────
    # <= 0 means unset: the published or default port applies.
    service_port: int = Field(default=0, alias="KUBERNETES_SERVICE_PORT_OVERRIDE", le=65535)

    # ── API connection ────────────────────────────────────────────────────────
    kubernetes_master_url: str = Field(default=DEFAULT_MASTER_URL, alias="KUBERNETES_MASTER_URL")
    api_token: SecretStr | None = Field(default=None, alias="KUBERNETES_API_TOKEN")
    ca_certificate: str | None = Field(default=None, alias="KUBERNETES_CA_CERTIFICATE")
    api_max_retries: int = Field(default=DEFAULT_API_RETRIES, alias="KUBERNETES_API_RETRIES", ge=1)

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().upper()
            if v in ("DNS_LOOKUP", "DNS"):
                return Mode.DNS
            if v in ("KUBERNETES_API", "API"):
                return Mode.API
            if not v:
                return None
        return v

    @field_validator("service_dns", "service_name", "service_label_name", "ca_certificate")
    @classmethod
    def blank_is_unset(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("service_port")
    @classmethod
    def negative_port_is_unset(cls, v: int) -> int:
        return max(v, 0)

    @field_validator("kubernetes_master_url")
    @classmethod
    def validate_master_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"kubernetes master url must be http(s), got {v!r}")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_lookup_targets(self) -> "DiscoveryConfig":
        if self.service_dns and (self.service_name or self.service_label_name):
            raise ValueError(
                "service-dns cannot be combined with service-name or service-label-name"
            )
        if self.mode is Mode.DNS and not self.service_dns:
            raise ValueError("mode DNS requires service-dns")
        return self

    @property
    def effective_mode(self) -> Mode:
        """Configured mode, or DNS when a service DNS name is set and API otherwise."""
        if self.mode is not None:
            return self.mode
        return Mode.DNS if self.service_dns else Mode.API

    def summary(self) -> dict[str, Any]:
        """Options as a plain dict with credentials redacted, for the startup log line."""
        data = self.model_dump()
        data["mode"] = self.effective_mode.value
        data["api_token"] = self.api_token.get_secret_value() if self.api_token else None
        return redact_dict(data)


def load_config(**overrides: Any) -> DiscoveryConfig:
    """
    Build a DiscoveryConfig from the environment plus explicit overrides.
    Raises ConfigurationError (not Pydantic's ValidationError) on bad input.
    """
    try:
        return DiscoveryConfig(**overrides)
    except PydanticValidationError as exc:
        fields = {
            ".".join(str(loc) for loc in err["loc"]) or "config": err["msg"]
            for err in exc.errors()
        }
        raise ConfigurationError(
            user_message="Invalid discovery configuration.",
            detail=f"Invalid discovery configuration: {fields}",
            fields=fields,
        ) from exc


__all__ = [
    "Mode",
    "DiscoveryConfig",
    "load_config",
    "default_namespace",
    "DEFAULT_MASTER_URL",
    "DEFAULT_NAMESPACE",
    "SERVICE_ACCOUNT_TOKEN",
    "SERVICE_ACCOUNT_CA",
    "SERVICE_ACCOUNT_NAMESPACE",
]
