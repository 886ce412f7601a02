"""Line item mapping from hub items to ShipStation order items."""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from ..models import NormalizedLineItem, RemoteLineItem

logger = logging.getLogger(__name__)


def format_properties(properties: Mapping[str, Any] | None) -> str | None:
    """Serialize item properties as key:value lines, keeping their order."""
    if not properties:
        return None
    return "".join(f"{key}:{value}\n" for key, value in properties.items())


def coerce_price(price: Any, as_string: bool = False) -> str | float | None:
    """
    Coerce a hub price to the form the active API generation expects.

    Args:
        price: Price as received from the hub
        as_string: OData wants decimal strings, REST wants floats

    Returns:
        Price as string or float, None if missing or not numeric
    """
    if price is None or price == "":
        return None

    try:
        value = Decimal(str(price))
    except InvalidOperation:
        logger.warning(f"Ignoring non-numeric item price: {price!r}")
        return None

    if as_string:
        return str(value)
    return float(value)


def to_remote(
    items: Iterable[NormalizedLineItem] | None, prices_as_strings: bool = False
) -> list[RemoteLineItem]:
    """
    Convert hub line items into ShipStation order items.

    Args:
        items: Hub line items; None or empty yields no items
        prices_as_strings: Whether unit prices are sent as strings

    Returns:
        ShipStation line items in input order
    """
    remote_items = []

    for item in items or []:
        properties = item.properties or {}
        remote_items.append(
            RemoteLineItem(
                line_item_key=item.product_id,
                sku=item.product_id,
                name=item.name,
                quantity=item.quantity,
                unit_price=coerce_price(item.price, as_string=prices_as_strings),
                image_url=item.image_url,
                options=format_properties(properties),
                option_pairs=[(str(key), str(value)) for key, value in properties.items()],
            )
        )

    return remote_items
