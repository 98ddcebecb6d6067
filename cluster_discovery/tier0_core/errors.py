"""
cluster_discovery.tier0_core.errors
────────────────────────────────────
Error taxonomy for peer discovery. Every error carries a stable code, a
user-safe message and a ``retryable`` flag. The retry executor consults
``retryable`` and nothing else: transport failures, 5xx and throttling are
transient, everything that points at the caller (bad token, bad selector,
bad configuration) is surfaced immediately.

Empty results (no DNS records, no endpoints) are never errors.
"""
from __future__ import annotations

from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class DiscoveryError(Exception):
    """
    Base class for all discovery errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - user_message: safe to surface to operators
    - detail: internal context (URL, status, upstream body)
    - status_code: HTTP status the platform answered with, when there was one
    - retryable: whether the retry executor may try again
    """

    status_code: int = 500
    code: str = "discovery_error"
    retryable: bool = False

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "Peer discovery failed.",
        detail: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.user_message = user_message
        self.detail = detail or user_message
        self.metadata = metadata
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
                "retryable": self.retryable,
            }
        }


# ── Non-retryable (caller fault) ──────────────────────────────────────────────

class AuthError(DiscoveryError):
    """The platform rejected the bearer token."""
    status_code = 401
    code = "auth_error"


class ForbiddenError(DiscoveryError):
    """Token is valid but lacks RBAC permission to read endpoints/pods/nodes."""
    status_code = 403
    code = "forbidden"


class NotFoundError(DiscoveryError):
    """Requested object (service endpoints, pod, node, namespace) does not exist."""
    status_code = 404
    code = "not_found"


class ValidationError(DiscoveryError):
    """Request rejected as malformed, or the platform answered with an unreadable payload."""
    status_code = 422
    code = "validation_error"

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "Validation failed.",
        fields: dict | None = None,
        **metadata: Any,
    ) -> None:
        self.fields = fields or {}
        super().__init__(code, user_message, **metadata)

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.fields:
            d["error"]["fields"] = self.fields
        return d


class ConfigurationError(DiscoveryError):
    """Misconfiguration detected at startup or on first use (e.g. no token available)."""
    status_code = 500
    code = "configuration_error"


# ── Transient (retried) ───────────────────────────────────────────────────────

class RateLimitError(DiscoveryError):
    """The API server is throttling requests (HTTP 429)."""
    status_code = 429
    code = "rate_limit_exceeded"
    retryable = True

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "Platform API throttled the request.",
        retry_after: int | None = None,
        **metadata: Any,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(code, user_message, **metadata)


class UpstreamError(DiscoveryError):
    """Transport failure or 5xx from the platform API."""
    status_code = 502
    code = "upstream_error"
    retryable = True


def is_retryable(exc: BaseException) -> bool:
    """Return True if *exc* is a transient platform error."""
    return isinstance(exc, DiscoveryError) and exc.retryable


__all__ = [
    "DiscoveryError",
    "AuthError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
    "ConfigurationError",
    "RateLimitError",
    "UpstreamError",
    "is_retryable",
]
