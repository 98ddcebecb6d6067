"""
cluster_discovery.tier3_platform.address
─────────────────────────────────────────
Turns the textual IP/hostname a platform reports into a validated address.
Failure is recoverable: the platform can publish an endpoint before local
DNS knows about it, so an unresolvable address is logged and skipped, never
raised.
"""
from __future__ import annotations

import ipaddress
import socket
from collections.abc import Callable

from cluster_discovery.tier0_core.logging import get_logger

logger = get_logger(__name__)


class AddressMapper:
    """Maps ``"10.0.0.5"`` or ``"pod-0.svc.local"`` to a literal IP string, or None."""

    def __init__(self, resolve_host: Callable[[str], str] = socket.gethostbyname) -> None:
        self._resolve_host = resolve_host

    def map(self, address: str | None) -> str | None:
        if address is None:
            return None
        text = address.strip()
        if not text:
            return None
        try:
            return str(ipaddress.ip_address(text))
        except ValueError:
            pass
        try:
            return str(ipaddress.ip_address(self._resolve_host(text)))
        except (OSError, ValueError):
            logger.warning("address.unresolvable", address=text)
            return None

    __call__ = map


_default_mapper = AddressMapper()


def map_address(address: str | None) -> str | None:
    """Module-level shortcut using the system resolver."""
    return _default_mapper.map(address)


__all__ = ["AddressMapper", "map_address"]
