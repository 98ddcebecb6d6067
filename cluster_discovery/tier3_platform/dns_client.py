"""
cluster_discovery.tier3_platform.dns_client
────────────────────────────────────────────
Resolves a (headless) service DNS name to every address behind it.
No records, NXDOMAIN and timeouts all mean "no peers yet" and produce an
empty list; they are logged, not raised.

Stack: dnspython
"""
from __future__ import annotations

import time
from collections.abc import Callable

import dns.exception
import dns.resolver

from cluster_discovery.tier0_core.logging import get_logger

logger = get_logger(__name__)

_RECORD_TYPES = ("A", "AAAA")


class DnsClient:
    """Thin wrapper over ``dns.resolver.Resolver`` with a per-lookup deadline."""

    def __init__(
        self,
        resolver_factory: Callable[[], dns.resolver.Resolver] = dns.resolver.Resolver,
    ) -> None:
        self._resolver_factory = resolver_factory

    def resolve_all(self, name: str, timeout_seconds: float) -> list[str]:
        """Return the IPs behind *name* (A then AAAA, de-duplicated, order kept)."""
        try:
            resolver = self._resolver_factory()
        except dns.exception.DNSException as exc:
            logger.warning("dns.resolver_unavailable", name=name, error=str(exc))
            return []

        deadline = time.monotonic() + timeout_seconds
        found: list[str] = []
        for record_type in _RECORD_TYPES:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("dns.lookup_timeout", name=name, timeout=timeout_seconds)
                break
            try:
                answer = resolver.resolve(name, record_type, lifetime=remaining, search=True)
            except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
                continue
            except dns.exception.Timeout:
                logger.warning("dns.lookup_timeout", name=name, timeout=timeout_seconds)
                break
            except dns.exception.DNSException as exc:
                logger.warning("dns.lookup_failed", name=name, record_type=record_type, error=str(exc))
                continue
            for rdata in answer:
                ip = rdata.address
                if ip not in found:
                    found.append(ip)

        if not found:
            logger.warning("dns.no_records", name=name)
        return found


__all__ = ["DnsClient"]
