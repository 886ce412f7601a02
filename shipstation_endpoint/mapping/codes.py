"""
Carrier, service and package code resolution.

Hub shipments name carriers and services ("UPS", "UPS Ground"); ShipStation
wants its own codes. Every lookup lists the catalog from ShipStation again,
nothing is cached between calls.
"""

import logging

from ..common.errors import CodeLookupError
from ..models import CodeEntry

logger = logging.getLogger(__name__)


def _match(entries: list[CodeEntry], name: str) -> str | None:
    for entry in entries:
        if entry.name == name:
            return entry.code
    return None


class CodeResolver:
    """Resolves human-readable names to ShipStation codes."""

    def __init__(self, gateway):
        self.gateway = gateway

    def resolve_carrier(self, name: str) -> str:
        code = _match(self.gateway.list_carriers(), name)
        if code is None:
            raise CodeLookupError("carrier", name)
        logger.debug(f"Resolved carrier {name!r} to {code}")
        return code

    def resolve_service(self, carrier_code: str, name: str) -> str:
        code = _match(self.gateway.list_services(carrier_code), name)
        if code is None:
            raise CodeLookupError("service", name, scope=carrier_code)
        logger.debug(f"Resolved service {name!r} to {code}")
        return code

    def resolve_package(self, carrier_code: str, name: str) -> str:
        code = _match(self.gateway.list_packages(carrier_code), name)
        if code is None:
            raise CodeLookupError("package", name, scope=carrier_code)
        logger.debug(f"Resolved package {name!r} to {code}")
        return code
