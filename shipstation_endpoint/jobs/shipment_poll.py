"""
ShipStation Shipment Poll Job.

Fetches shipments created since the hub's watermark and reports them back
as shipped. ShipStation only filters by calendar date, in its own zone, so
the query is widened to the whole day and narrowed again client side. The
watermark and page number are threaded through the hub; nothing is stored
here.
"""

import logging
from datetime import datetime, tzinfo

from pydantic import BaseModel, Field

from ..adapters.base import RemoteGateway, create_gateway
from ..common.errors import ConfigurationError
from ..config.loader import get_remote_timezone, get_shipstation_settings
from ..mapping import addresses
from ..models import HubParameters, RemoteShipment, ShipmentUpdate, SyncCursor
from ..utils.time_windows import (
    anchor_to_zone,
    format_iso_timestamp,
    parse_iso_timestamp,
    remote_query_date,
    utc_now,
)

logger = logging.getLogger(__name__)


class PollResult(BaseModel):
    updates: list[ShipmentUpdate] = Field(default_factory=list)
    next_cursor: SyncCursor
    more_pages: bool = False
    fetched: int = 0


def cursor_from_parameters(parameters: HubParameters) -> SyncCursor:
    """Read the polling cursor the hub sent back."""
    if not parameters.since:
        raise ConfigurationError("since parameter required")
    try:
        since = parse_iso_timestamp(parameters.since)
    except ValueError as e:
        raise ConfigurationError(f"Invalid since parameter: {parameters.since}") from e
    return SyncCursor(since=since, page=max(parameters.page or 1, 1))


def cursor_to_parameters(cursor: SyncCursor) -> dict:
    """Render a cursor as hub parameters."""
    return {"since": format_iso_timestamp(cursor.since), "page": cursor.page}


def is_new_shipment(shipment: RemoteShipment, watermark: datetime, remote_tz: tzinfo) -> bool:
    """Check the shipment was created strictly after the watermark."""
    if shipment.create_date is None:
        return False
    return anchor_to_zone(shipment.create_date, remote_tz) > watermark


def to_shipment_update(shipment: RemoteShipment, gateway: RemoteGateway) -> ShipmentUpdate | None:
    """
    Build the hub update for a shipment.

    Shipment records from older API generations lack the order number and
    address, so the owning order is fetched for them.
    """
    order_number = shipment.order_number
    ship_to = shipment.ship_to

    if (not order_number or ship_to is None) and shipment.order_id:
        order = gateway.get_order(shipment.order_id)
        if order is not None:
            order_number = order_number or order.order_number
            ship_to = ship_to or order.ship_to

    if not order_number:
        if not shipment.order_id:
            logger.warning(f"Skipping shipment {shipment.shipment_id}: no order reference")
            return None
        # Unresolved orders are reported under the ShipStation order id
        logger.warning(
            f"Order {shipment.order_id} for shipment {shipment.shipment_id} not found, "
            f"reporting it by ShipStation order id"
        )
        order_number = shipment.order_id

    return ShipmentUpdate(
        id=order_number,
        order_id=order_number,
        tracking=shipment.tracking_number,
        shipstation_id=shipment.shipment_id,
        shipped_at=shipment.ship_date.date().isoformat() if shipment.ship_date else None,
        shipping_carrier=shipment.carrier_code,
        shipping_method=shipment.service_code,
        shipping_address=addresses.from_remote(ship_to) if ship_to else None,
    )


def poll_shipments(
    gateway: RemoteGateway,
    cursor: SyncCursor,
    page_size: int,
    remote_tz: tzinfo,
    now: datetime | None = None,
) -> PollResult:
    """
    Poll one page of shipments.

    Args:
        gateway: ShipStation gateway
        cursor: Watermark and page from the hub
        page_size: Shipments per page
        remote_tz: Zone ShipStation records its dates in
        now: Processing time, defaults to the current UTC time

    Returns:
        PollResult with the updates and the cursor the hub should send next.
        While pages remain the watermark is kept and the page advanced;
        after the last page the watermark moves to now and the page resets.
    """
    now = now or utc_now()
    query_date = remote_query_date(cursor.since, remote_tz)

    logger.info(
        f"Polling ShipStation shipments since {format_iso_timestamp(cursor.since)} "
        f"(query date {query_date}, page {cursor.page})"
    )

    page = gateway.list_shipments(query_date, cursor.page, page_size)

    updates = []
    for shipment in page.shipments:
        if not is_new_shipment(shipment, cursor.since, remote_tz):
            continue
        update = to_shipment_update(shipment, gateway)
        if update is not None:
            updates.append(update)

    more_pages = page.page < page.pages
    if more_pages:
        next_cursor = SyncCursor(since=cursor.since, page=cursor.page + 1)
    else:
        next_cursor = SyncCursor(since=now, page=1)

    logger.info(
        f"Kept {len(updates)} of {len(page.shipments)} shipments "
        f"(page {page.page} of {page.pages})"
    )

    return PollResult(
        updates=updates,
        next_cursor=next_cursor,
        more_pages=more_pages,
        fetched=len(page.shipments),
    )


def run_shipment_poll(
    parameters: HubParameters,
    gateway: RemoteGateway | None = None,
    now: datetime | None = None,
) -> PollResult:
    """
    Run a shipment poll for a hub request.

    Args:
        parameters: Hub parameters with credentials, since and page
        gateway: Gateway to use; built from the parameters when omitted
        now: Processing time override

    Returns:
        PollResult for the requested page
    """
    settings = get_shipstation_settings()
    cursor = cursor_from_parameters(parameters)
    gateway = gateway or create_gateway(parameters, settings)
    page_size = parameters.page_size or settings["page_size"]

    return poll_shipments(gateway, cursor, page_size, get_remote_timezone(), now=now)
