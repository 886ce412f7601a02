"""
Remote gateway capability shared by every ShipStation API generation.

Order assembly and shipment polling are written once against
RemoteGateway; each generation supplies a client that renders the common
remote models into its own wire format.
"""

import logging
from datetime import date
from enum import Enum
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from ..models import CodeEntry, HubParameters, RemoteOrder, ShipmentPage

logger = logging.getLogger(__name__)


class Generation(str, Enum):
    """ShipStation API generations."""

    ODATA = "odata"
    GATEWAY = "gateway"
    REST = "rest"


class RemoteGateway(Protocol):
    """Operations the endpoint needs from ShipStation."""

    generation: Generation
    prices_as_strings: bool

    def create_order(self, order: RemoteOrder) -> RemoteOrder: ...

    def update_order(self, order: RemoteOrder) -> RemoteOrder: ...

    def find_order(self, order_number: str) -> RemoteOrder | None: ...

    def get_order(self, order_id: str) -> RemoteOrder | None: ...

    def list_shipments(self, query_date: date, page: int, page_size: int) -> ShipmentPage: ...

    def list_carriers(self) -> list[CodeEntry]: ...

    def list_services(self, carrier_code: str) -> list[CodeEntry]: ...

    def list_packages(self, carrier_code: str) -> list[CodeEntry]: ...


def detect_generation(parameters: HubParameters) -> Generation:
    """Pick the API generation implied by the credentials supplied."""
    if parameters.username and parameters.password:
        return Generation.ODATA
    if parameters.mashape_key:
        return Generation.GATEWAY
    return Generation.REST


def create_gateway(parameters: HubParameters, settings: dict[str, Any]) -> RemoteGateway:
    """
    Create the gateway for a hub request.

    Args:
        parameters: Hub parameters carrying the credentials
        settings: ShipStation settings from get_shipstation_settings()

    Returns:
        Gateway for the generation the credentials belong to
    """
    from .shipstation import ShipStationClient
    from .shipstation_odata import ShipStationODataClient

    generation = detect_generation(parameters)
    timeout = settings["timeout_seconds"]
    remote_tz = ZoneInfo(settings["timezone"])
    logger.debug(f"Using ShipStation {generation.value} gateway")

    if generation is Generation.ODATA:
        return ShipStationODataClient(
            parameters, base_url=settings["odata_base_url"], timeout=timeout, remote_tz=remote_tz
        )
    if generation is Generation.GATEWAY:
        return ShipStationClient(
            parameters,
            base_url=settings["gateway_base_url"],
            timeout=timeout,
            generation=Generation.GATEWAY,
            remote_tz=remote_tz,
        )
    return ShipStationClient(
        parameters, base_url=settings["rest_base_url"], timeout=timeout, remote_tz=remote_tz
    )
