"""
cluster_discovery.tier0_core.http
──────────────────────────────────
HTTP status constants and the mapping from a platform API status code to
the discovery error taxonomy. The Kubernetes client is the only caller, but
keeping the table here lets tests pin the classification down directly.
"""
from __future__ import annotations

from cluster_discovery.tier0_core.errors import (
    AuthError,
    DiscoveryError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    UpstreamError,
    ValidationError,
)


# ── Status code constants ──────────────────────────────────────────────────

class HTTP:
    """Status codes the Kubernetes API server answers with."""

    # 2xx
    OK = 200

    # 4xx
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    TOO_MANY_REQUESTS = 429

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504


_BY_STATUS: dict[int, type[DiscoveryError]] = {
    HTTP.UNAUTHORIZED: AuthError,
    HTTP.FORBIDDEN: ForbiddenError,
    HTTP.NOT_FOUND: NotFoundError,
    HTTP.TOO_MANY_REQUESTS: RateLimitError,
}


def is_success(status: int) -> bool:
    return 200 <= status < 300


def error_for_status(status: int) -> type[DiscoveryError]:
    """
    Return the error class for a non-2xx status.

    401/403/404 and 429 have dedicated classes; any other 4xx is a caller
    fault (ValidationError, not retried); 5xx and anything unexpected is
    an UpstreamError (retried).
    """
    if status in _BY_STATUS:
        return _BY_STATUS[status]
    if 400 <= status < 500:
        return ValidationError
    return UpstreamError


__all__ = ["HTTP", "is_success", "error_for_status"]
