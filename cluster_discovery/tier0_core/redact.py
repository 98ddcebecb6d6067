"""
cluster_discovery.tier0_core.redact
────────────────────────────────────
Secret redaction for log events and configuration summaries. The bearer
token used against the API server must never reach a log aggregator, so
every structlog event passes through ``structlog_redact_processor``.
"""
from __future__ import annotations

import re
from typing import Any

# ── Default redacted key names (case-insensitive) ─────────────────────────

_SENSITIVE_KEYS: frozenset[str] = frozenset({
    "token", "api_token", "access_token", "bearer",
    "authorization", "secret", "password", "private_key",
    "ca_certificate",
})

# ── Regex patterns for inline scrubbing ───────────────────────────────────

_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.I), "Bearer [REDACTED]"),
    (re.compile(r"(token)\s*[=:]\s*[^\s&\"',}]+", re.I), r"\1=[REDACTED]"),
]

REDACTED = "[REDACTED]"


# ── Public API ─────────────────────────────────────────────────────────────

def redact_dict(
    data: dict[str, Any],
    sensitive_keys: frozenset[str] | None = None,
) -> dict[str, Any]:
    """
    Return a copy of *data* with sensitive values replaced by REDACTED.
    Values that are None stay None so "not configured" remains visible.
    """
    keys = sensitive_keys if sensitive_keys is not None else _SENSITIVE_KEYS
    result: dict[str, Any] = {}
    for k, v in data.items():
        if k.lower() in keys and v is not None:
            result[k] = REDACTED
        elif isinstance(v, dict):
            result[k] = redact_dict(v, keys)
        else:
            result[k] = v
    return result


def scrub_string(text: str) -> str:
    """Apply regex-based scrubbing to an arbitrary string (error details, URLs)."""
    for pattern, replacement in _PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def structlog_redact_processor(
    logger: Any,
    method: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor: redact sensitive keys and scrub the ``error`` field."""
    event_dict = redact_dict(event_dict)
    error = event_dict.get("error")
    if isinstance(error, str):
        event_dict["error"] = scrub_string(error)
    return event_dict


__all__ = [
    "REDACTED",
    "redact_dict",
    "scrub_string",
    "structlog_redact_processor",
]
