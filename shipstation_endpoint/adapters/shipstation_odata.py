"""
ShipStation OData client for the ShipStation endpoint.

The legacy data service exposes Orders, OrderItems, Shipments and the
carrier catalogs (Providers, ShippingServices, PackageTypes) as OData v2
entity sets. Orders and their items are separate resources, so creating or
updating an order takes several calls.
"""

import logging
import math
from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

import requests

from ..common.errors import RemoteApiError
from ..common.http import USER_AGENT, build_auth_headers, request_json
from ..models import (
    CodeEntry,
    HubParameters,
    RemoteAddress,
    RemoteLineItem,
    RemoteOrder,
    RemoteShipment,
    RemoteStatus,
    ShipmentPage,
)
from ..utils.time_windows import parse_remote_timestamp
from .base import Generation

logger = logging.getLogger(__name__)

ODATA_STATUSES = {
    RemoteStatus.AWAITING_PAYMENT: 1,
    RemoteStatus.AWAITING_SHIPMENT: 2,
    RemoteStatus.SHIPPED: 3,
    RemoteStatus.CANCELLED: 4,
    RemoteStatus.ON_HOLD: 5,
}
STATUS_BY_ID = {status_id: status for status, status_id in ODATA_STATUSES.items()}

EPOCH = datetime(1970, 1, 1)


def format_odata_date(dt: datetime | None, remote_tz: tzinfo) -> str | None:
    """Format a datetime as an OData JSON date in the remote wall clock."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(remote_tz).replace(tzinfo=None)
    millis = int((dt - EPOCH).total_seconds() * 1000)
    return f"/Date({millis})/"


def quote_literal(value: str) -> str:
    """Quote a string literal for an OData $filter."""
    return "'" + value.replace("'", "''") + "'"


def _money(value: float | None) -> str | None:
    return None if value is None else str(Decimal(str(value)))


def _compact(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


def _results(data: Any) -> list[dict]:
    """Extract the entity list from an OData JSON response."""
    if data is None:
        return []
    if isinstance(data, dict) and "d" in data:
        data = data["d"]
    if isinstance(data, dict):
        if "results" in data:
            return data["results"]
        if "value" in data:
            return data["value"]
        return [data]
    return data


def _entity(data: Any) -> dict:
    results = _results(data)
    return results[0] if results else {}


class ShipStationODataClient:
    """ShipStation OData client implementing RemoteGateway."""

    generation = Generation.ODATA
    prices_as_strings = True

    def __init__(
        self,
        parameters: HubParameters,
        base_url: str = "https://data.shipstation.com/1.1",
        timeout: float = 300,
        remote_tz: tzinfo | None = None,
    ):
        """Initialize ShipStation OData client."""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.remote_tz = remote_tz or ZoneInfo("America/Los_Angeles")
        self.session = requests.Session()

        self.session.headers.update(build_auth_headers(parameters))
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            }
        )

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
        payload: Any = None,
        headers: dict | None = None,
    ) -> Any:
        return request_json(
            self.session,
            method,
            f"{self.base_url}{endpoint}",
            params=params,
            json=payload,
            headers=headers,
            timeout=self.timeout,
        )

    # Rendering

    def _render_address(self, prefix: str, address: RemoteAddress | None) -> dict:
        if address is None:
            return {}
        return _compact(
            {
                f"{prefix}Name": address.name,
                f"{prefix}Company": address.company,
                f"{prefix}Street1": address.street1,
                f"{prefix}Street2": address.street2,
                f"{prefix}Street3": address.street3,
                f"{prefix}City": address.city,
                f"{prefix}State": address.state,
                f"{prefix}PostalCode": address.postal_code,
                f"{prefix}CountryCode": address.country,
                f"{prefix}Phone": address.phone,
            }
        )

    def render_order(self, order: RemoteOrder) -> dict:
        """Render an order as an Orders entity."""
        payload = _compact(
            {
                "OrderNumber": order.order_number,
                "OrderDate": format_odata_date(order.order_date, self.remote_tz),
                "PayDate": format_odata_date(order.payment_date, self.remote_tz),
                "OrderStatusID": ODATA_STATUSES[order.status],
                "HoldUntil": format_odata_date(order.hold_until_date, self.remote_tz),
                "BuyerEmail": order.customer_email,
                "NotesFromBuyer": order.customer_notes,
                "InternalNotes": order.internal_notes,
                "StoreID": int(order.store_id) if order.store_id else None,
                "MarketplaceID": int(order.marketplace_id) if order.marketplace_id else None,
                "OrderTotal": _money(order.order_total),
                "AmountPaid": _money(order.amount_paid),
                "TaxAmount": _money(order.tax_amount),
                "ShippingAmount": _money(order.shipping_amount),
                "Gift": order.gift,
                "GiftMessage": order.gift_message,
                "RequestedShippingService": order.requested_shipping_service,
                "ProviderID": int(order.carrier_code) if order.carrier_code else None,
                "ServiceID": int(order.service_code) if order.service_code else None,
                "PackageTypeID": int(order.package_code) if order.package_code else None,
                "Confirmation": order.confirmation,
                "WeightOz": order.weight_ounces,
                "ContainsAlcohol": order.contains_alcohol,
                "SaturdayDelivery": order.saturday_delivery,
                "NonMachinable": order.non_machinable,
            }
        )
        for position, value in enumerate(order.custom_fields, start=1):
            payload[f"CustomField{position}"] = value
        payload.update(self._render_address("Ship", order.ship_to))
        payload.update(self._render_address("Bill", order.bill_to))
        return payload

    def render_item(self, item: RemoteLineItem, order_id: str) -> dict:
        """Render a line item as an OrderItems entity."""
        return _compact(
            {
                "OrderID": int(order_id),
                "SKU": item.sku,
                "Description": item.name,
                "Quantity": item.quantity,
                "UnitPrice": item.unit_price,
                "ThumbnailUrl": item.image_url,
                "Options": item.options,
            }
        )

    # Parsing

    def _parse_address(self, prefix: str, data: dict) -> RemoteAddress | None:
        if not data.get(f"{prefix}Street1") and not data.get(f"{prefix}Name"):
            return None
        return RemoteAddress(
            name=data.get(f"{prefix}Name"),
            company=data.get(f"{prefix}Company"),
            street1=data.get(f"{prefix}Street1"),
            street2=data.get(f"{prefix}Street2"),
            street3=data.get(f"{prefix}Street3"),
            city=data.get(f"{prefix}City"),
            state=data.get(f"{prefix}State"),
            postal_code=data.get(f"{prefix}PostalCode"),
            country=data.get(f"{prefix}CountryCode"),
            phone=data.get(f"{prefix}Phone"),
        )

    def parse_order(self, data: dict) -> RemoteOrder:
        """Parse an Orders entity."""
        order_id = data.get("OrderID")
        return RemoteOrder(
            order_id=None if order_id is None else str(order_id),
            order_key=None if order_id is None else str(order_id),
            order_number=str(data.get("OrderNumber") or ""),
            order_date=parse_remote_timestamp(data.get("OrderDate")),
            status=STATUS_BY_ID.get(data.get("OrderStatusID"), RemoteStatus.AWAITING_SHIPMENT),
            customer_email=data.get("BuyerEmail"),
            ship_to=self._parse_address("Ship", data),
            bill_to=self._parse_address("Bill", data),
            carrier_code=None if data.get("ProviderID") is None else str(data["ProviderID"]),
            service_code=None if data.get("ServiceID") is None else str(data["ServiceID"]),
        )

    def parse_shipment(self, data: dict) -> RemoteShipment:
        """Parse a Shipments entity; these carry no order number or address."""
        return RemoteShipment(
            shipment_id=str(data["ShipmentID"]),
            order_id=None if data.get("OrderID") is None else str(data["OrderID"]),
            tracking_number=data.get("TrackingNumber"),
            create_date=parse_remote_timestamp(data.get("CreateDate")),
            ship_date=parse_remote_timestamp(data.get("ShipDate")),
            carrier_code=None if data.get("ProviderID") is None else str(data["ProviderID"]),
            service_code=None if data.get("ServiceID") is None else str(data["ServiceID"]),
        )

    # Order items

    def _create_items(self, items: list[RemoteLineItem], order_id: str) -> list[str]:
        created = []
        for item in items:
            data = self._make_request("POST", "/OrderItems", payload=self.render_item(item, order_id))
            created.append(str(_entity(data).get("OrderItemID")))
        return created

    def _list_item_ids(self, order_id: str) -> list[str]:
        data = self._make_request(
            "GET", "/OrderItems", params={"$filter": f"OrderID eq {int(order_id)}"}
        )
        return [str(item["OrderItemID"]) for item in _results(data)]

    # RemoteGateway

    def create_order(self, order: RemoteOrder) -> RemoteOrder:
        """
        Create an order and then its items.

        If an item cannot be created the new order is deleted again so no
        order is left behind without its items.
        """
        logger.info(f"Sending order {order.order_number} to ShipStation OData")
        data = self._make_request("POST", "/Orders", payload=self.render_order(order))
        order_id = str(_entity(data)["OrderID"])

        try:
            self._create_items(order.items, order_id)
        except (RemoteApiError, requests.RequestException):
            logger.error(f"Creating items for order {order_id} failed, deleting the order")
            try:
                self._make_request("DELETE", f"/Orders({order_id})")
            except (RemoteApiError, requests.RequestException) as cleanup_error:
                logger.error(f"Could not delete orphaned order {order_id}: {cleanup_error}")
            raise

        return order.model_copy(update={"order_id": order_id, "order_key": order_id})

    def update_order(self, order: RemoteOrder) -> RemoteOrder:
        """
        Merge order changes, then swap its items.

        New items are created before the previous ones are deleted, so a
        failure part way leaves duplicates rather than an empty order.
        """
        if not order.order_id:
            raise ValueError(f"Order {order.order_number} has no ShipStation id to update")

        order_id = order.order_id
        self._make_request(
            "POST",
            f"/Orders({int(order_id)})",
            payload=self.render_order(order),
            headers={"X-HTTP-Method": "MERGE"},
        )

        previous_items = self._list_item_ids(order_id)
        self._create_items(order.items, order_id)
        for item_id in previous_items:
            self._make_request("DELETE", f"/OrderItems({int(item_id)})")

        return order

    def find_order(self, order_number: str) -> RemoteOrder | None:
        data = self._make_request(
            "GET",
            "/Orders",
            params={"$filter": f"OrderNumber eq {quote_literal(order_number)}", "$top": 1},
        )
        results = _results(data)
        return self.parse_order(results[0]) if results else None

    def get_order(self, order_id: str) -> RemoteOrder | None:
        try:
            data = self._make_request("GET", f"/Orders({int(order_id)})")
        except RemoteApiError as e:
            if e.is_not_found:
                return None
            raise
        entity = _entity(data)
        return self.parse_order(entity) if entity else None

    def list_shipments(self, query_date: date, page: int, page_size: int) -> ShipmentPage:
        """List shipped shipments with a ship date on or after the query date."""
        since = f"{query_date.isoformat()}T00:00:00"
        params = {
            "$filter": f"ShipDate ge datetime'{since}' and ShipDate ne null",
            "$orderby": "ShipDate",
            "$top": page_size,
            "$skip": (page - 1) * page_size,
            "$inlinecount": "allpages",
        }
        data = self._make_request("GET", "/Shipments", params=params)
        results = _results(data)

        envelope = data.get("d") if isinstance(data, dict) else None
        total = envelope.get("__count") if isinstance(envelope, dict) else None
        if total is not None:
            pages = max(1, math.ceil(int(total) / page_size))
        else:
            pages = page + 1 if len(results) >= page_size else page

        return ShipmentPage(
            shipments=[self.parse_shipment(item) for item in results],
            page=page,
            pages=pages,
        )

    def list_carriers(self) -> list[CodeEntry]:
        data = self._make_request("GET", "/Providers")
        return [CodeEntry(code=str(p["ProviderID"]), name=p["Name"]) for p in _results(data)]

    def list_services(self, carrier_code: str) -> list[CodeEntry]:
        data = self._make_request(
            "GET", "/ShippingServices", params={"$filter": f"ProviderID eq {int(carrier_code)}"}
        )
        return [
            CodeEntry(code=str(s["ServiceID"]), name=s["Name"], carrier_code=carrier_code)
            for s in _results(data)
        ]

    def list_packages(self, carrier_code: str) -> list[CodeEntry]:
        data = self._make_request(
            "GET", "/PackageTypes", params={"$filter": f"ProviderID eq {int(carrier_code)}"}
        )
        return [
            CodeEntry(code=str(p["PackageTypeID"]), name=p["Name"], carrier_code=carrier_code)
            for p in _results(data)
        ]
