"""
cluster_discovery.tier0_core.logging
─────────────────────────────────────
Structured logs for the discovery subsystem. Events are short dotted names
with key/value context (``endpoints.resolved``, ``address.unresolvable``);
secrets are redacted before rendering.

Stack: structlog on top of the stdlib logging tree, so a host application
that already configured logging keeps control of handlers.
Configure via: CLUSTER_DISCOVERY_LOG_LEVEL, CLUSTER_DISCOVERY_LOG_FORMAT=json|console
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

from cluster_discovery.tier0_core.redact import structlog_redact_processor


# ── Configuration ─────────────────────────────────────────────────────────────

def _configure_structlog() -> None:
    log_level = os.getenv("CLUSTER_DISCOVERY_LOG_LEVEL", "INFO").upper()
    log_format = os.getenv("CLUSTER_DISCOVERY_LOG_FORMAT", "json").lower()
    level = getattr(logging, log_level, logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog_redact_processor,
    ]

    if log_format == "console":
        renderer: Any = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    package_logger = logging.getLogger("cluster_discovery")
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False


# ── Public API ────────────────────────────────────────────────────────────────

_configured = False


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Return a structured logger bound to the given name.

    Usage:
        log = get_logger(__name__)
        log.info("endpoints.resolved", count=3, namespace="default")
        log.warning("address.unresolvable", address="10.0.0.7")
    """
    global _configured
    if not _configured:
        _configure_structlog()
        _configured = True
    return structlog.get_logger(name or "cluster_discovery")


__all__ = ["get_logger"]
