"""
Order assembly for ShipStation.

Combines the address, line item and code mappings into a single remote
order, and drives create and update calls through a gateway.
"""

import logging

from ..common.errors import InvalidShipmentError
from ..models import (
    HubParameters,
    NormalizedShipment,
    RemoteOrder,
    RemoteStatus,
    SkippedUpdate,
    UpdateResult,
)
from . import addresses, line_items
from .codes import CodeResolver

logger = logging.getLogger(__name__)

HOLD_STATUSES = frozenset({"hold", "on_hold"})
CANCELLED_STATUSES = frozenset({"cancelled", "canceled"})
SHIPPED_STATUS = "shipped"


def map_status(status: str | None) -> RemoteStatus:
    """Map a hub shipment status to a ShipStation order status."""
    status = (status or "").strip().lower()
    if status in HOLD_STATUSES:
        return RemoteStatus.ON_HOLD
    if status in CANCELLED_STATUSES:
        return RemoteStatus.CANCELLED
    return RemoteStatus.AWAITING_SHIPMENT


def _resolve_codes(shipment: NormalizedShipment, resolver: CodeResolver) -> dict:
    """Resolve carrier, service and package codes unless a service is requested."""
    if shipment.requested_shipping_service:
        return {"requested_shipping_service": shipment.requested_shipping_service}
    if not shipment.shipping_carrier:
        return {}

    carrier_code = resolver.resolve_carrier(shipment.shipping_carrier)
    codes = {"carrier_code": carrier_code}
    if shipment.shipping_method:
        codes["service_code"] = resolver.resolve_service(carrier_code, shipment.shipping_method)
    if shipment.package:
        codes["package_code"] = resolver.resolve_package(carrier_code, shipment.package)
    return codes


def build_create_request(
    shipment: NormalizedShipment,
    resolver: CodeResolver,
    parameters: HubParameters,
    prices_as_strings: bool = False,
) -> RemoteOrder:
    """
    Build the ShipStation order for a hub shipment.

    Args:
        shipment: Hub shipment
        resolver: Code resolver bound to the active gateway
        parameters: Hub parameters supplying store and marketplace ids
        prices_as_strings: Whether the active gateway wants string prices

    Returns:
        Remote order carrying only the optional fields the shipment sets

    Raises:
        InvalidShipmentError: If the shipping address is absent or incomplete
        CodeLookupError: If a carrier, service or package name is unknown
    """
    if shipment.shipping_address is None:
        raise InvalidShipmentError("shipping_address required")

    ship_to = addresses.to_remote(shipment.shipping_address)
    if shipment.billing_address is not None:
        bill_to = addresses.to_remote(shipment.billing_address, role="billing_address")
    else:
        bill_to = ship_to

    status = map_status(shipment.status)
    order = {
        "order_number": shipment.id,
        "order_key": shipment.id,
        "order_date": shipment.created_at,
        "payment_date": shipment.created_at,
        "status": status,
        "customer_email": shipment.email,
        "customer_notes": shipment.delivery_instructions,
        "internal_notes": shipment.internal_notes,
        "ship_to": ship_to,
        "bill_to": bill_to,
        "items": line_items.to_remote(shipment.items, prices_as_strings=prices_as_strings),
        "gift": shipment.gift,
        "gift_message": shipment.gift_message,
        "confirmation": shipment.confirmation,
        "weight_ounces": shipment.weight,
        "store_id": parameters.shipstation_store_id,
        "marketplace_id": parameters.marketplace_id,
        "custom_fields": list(shipment.custom_fields),
        "contains_alcohol": shipment.contains_alcohol,
        "saturday_delivery": shipment.saturday_delivery,
        "non_machinable": shipment.non_machinable,
    }

    if status is RemoteStatus.ON_HOLD:
        order["hold_until_date"] = shipment.hold_until

    if shipment.totals is not None:
        order["order_total"] = shipment.totals.order
        order["shipping_amount"] = shipment.totals.shipping
        order["tax_amount"] = shipment.totals.tax
        order["amount_paid"] = shipment.totals.payment

    order.update(_resolve_codes(shipment, resolver))
    return RemoteOrder(**order)


def is_nop_update(shipment: NormalizedShipment) -> bool:
    """Shipped shipments are never sent back; polling reported them."""
    return shipment.normalized_status == SHIPPED_STATUS


def build_update_request(
    shipment: NormalizedShipment,
    existing: RemoteOrder,
    resolver: CodeResolver,
    parameters: HubParameters,
    prices_as_strings: bool = False,
) -> RemoteOrder | SkippedUpdate:
    """Build an upsert for an order already in ShipStation."""
    if is_nop_update(shipment):
        return SkippedUpdate(shipment_id=shipment.id, reason="already shipped")

    order = build_create_request(shipment, resolver, parameters, prices_as_strings)
    return order.model_copy(
        update={
            "order_id": existing.order_id,
            "order_key": existing.order_key or shipment.id,
        }
    )


def create_shipment(shipment: NormalizedShipment, gateway, parameters: HubParameters) -> RemoteOrder:
    """Create the ShipStation order for a hub shipment."""
    order = build_create_request(
        shipment, CodeResolver(gateway), parameters, gateway.prices_as_strings
    )
    return gateway.create_order(order)


def update_shipment(shipment: NormalizedShipment, gateway, parameters: HubParameters) -> UpdateResult:
    """
    Send a hub shipment update to ShipStation.

    Returns:
        UpdateResult whose outcome is "skipped" for shipped shipments (no
        remote call is made), "not_found" when ShipStation has no order with
        the shipment id, and "transmitted" otherwise
    """
    if is_nop_update(shipment):
        logger.info(f"Skipping update of shipped shipment {shipment.id}")
        return UpdateResult(outcome="skipped", shipment_id=shipment.id, reason="already shipped")

    existing = gateway.find_order(shipment.id)
    if existing is None:
        logger.info(f"Shipment {shipment.id} not found in ShipStation")
        return UpdateResult(outcome="not_found", shipment_id=shipment.id)

    order = build_update_request(
        shipment, existing, CodeResolver(gateway), parameters, gateway.prices_as_strings
    )
    updated = gateway.update_order(order)
    return UpdateResult(
        outcome="transmitted", shipment_id=shipment.id, shipstation_id=updated.order_id
    )
