"""
ShipStation REST API client for the ShipStation endpoint.

Serves both the public REST API (ssapi.shipstation.com) and the earlier
third-party REST gateway, which exposes the same JSON resources behind a
different host and an extra gateway key header.
"""

import logging
from datetime import date, tzinfo
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
from ..utils.time_windows import format_remote_timestamp, parse_remote_timestamp
from .base import Generation

logger = logging.getLogger(__name__)

# REST status values match RemoteStatus one to one
REST_STATUSES = {status: status.value for status in RemoteStatus}

ADVANCED_FLAGS = {
    "contains_alcohol": "containsAlcohol",
    "saturday_delivery": "saturdayDelivery",
    "non_machinable": "nonMachinable",
}


def _compact(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in payload.items() if value is not None}


def _str_or_none(value: Any) -> str | None:
    return None if value is None else str(value)


class ShipStationClient:
    """ShipStation REST client implementing RemoteGateway."""

    prices_as_strings = False

    def __init__(
        self,
        parameters: HubParameters,
        base_url: str = "https://ssapi.shipstation.com",
        timeout: float = 300,
        generation: Generation = Generation.REST,
        remote_tz: tzinfo | None = None,
    ):
        """Initialize ShipStation client."""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.generation = generation
        self.remote_tz = remote_tz or ZoneInfo("America/Los_Angeles")
        self.session = requests.Session()

        # Set up authentication headers
        self.session.headers.update(build_auth_headers(parameters))
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            }
        )

    def _make_request(
        self, method: str, endpoint: str, params: dict | None = None, payload: Any = None
    ) -> Any:
        """Make authenticated request to the ShipStation API."""
        return request_json(
            self.session,
            method,
            f"{self.base_url}{endpoint}",
            params=params,
            json=payload,
            timeout=self.timeout,
        )

    # Rendering

    def _render_address(self, address: RemoteAddress | None) -> dict | None:
        if address is None:
            return None
        return _compact(
            {
                "name": address.name,
                "company": address.company,
                "street1": address.street1,
                "street2": address.street2,
                "street3": address.street3,
                "city": address.city,
                "state": address.state,
                "postalCode": address.postal_code,
                "country": address.country,
                "phone": address.phone,
                "residential": address.residential,
            }
        )

    def _render_item(self, item: RemoteLineItem) -> dict:
        rendered = _compact(
            {
                "lineItemKey": item.line_item_key,
                "sku": item.sku,
                "name": item.name,
                "imageUrl": item.image_url,
                "quantity": item.quantity,
                "unitPrice": item.unit_price,
            }
        )
        if item.option_pairs:
            rendered["options"] = [{"name": key, "value": value} for key, value in item.option_pairs]
        return rendered

    def render_order(self, order: RemoteOrder) -> dict:
        """Render an order as a /orders/createorder payload."""
        payload = _compact(
            {
                "orderNumber": order.order_number,
                "orderKey": order.order_key,
                "orderDate": format_remote_timestamp(order.order_date, self.remote_tz),
                "paymentDate": format_remote_timestamp(order.payment_date, self.remote_tz),
                "orderStatus": REST_STATUSES[order.status],
                "holdUntilDate": format_remote_timestamp(order.hold_until_date, self.remote_tz),
                "customerEmail": order.customer_email,
                "customerNotes": order.customer_notes,
                "internalNotes": order.internal_notes,
                "billTo": self._render_address(order.bill_to),
                "shipTo": self._render_address(order.ship_to),
                "amountPaid": order.amount_paid,
                "taxAmount": order.tax_amount,
                "shippingAmount": order.shipping_amount,
                "gift": order.gift,
                "giftMessage": order.gift_message,
                "requestedShippingService": order.requested_shipping_service,
                "carrierCode": order.carrier_code,
                "serviceCode": order.service_code,
                "packageCode": order.package_code,
                "confirmation": order.confirmation,
            }
        )
        payload["items"] = [self._render_item(item) for item in order.items]

        if order.weight_ounces is not None:
            payload["weight"] = {"value": order.weight_ounces, "units": "ounces"}

        advanced = {"storeId": int(order.store_id) if order.store_id else None}
        for position, value in enumerate(order.custom_fields, start=1):
            advanced[f"customField{position}"] = value
        for field, remote_field in ADVANCED_FLAGS.items():
            advanced[remote_field] = getattr(order, field)
        advanced = _compact(advanced)
        if advanced:
            payload["advancedOptions"] = advanced

        return payload

    # Parsing

    def _parse_address(self, data: dict | None) -> RemoteAddress | None:
        if not data:
            return None
        return RemoteAddress(
            name=data.get("name"),
            company=data.get("company"),
            street1=data.get("street1"),
            street2=data.get("street2"),
            street3=data.get("street3"),
            city=data.get("city"),
            state=data.get("state"),
            postal_code=data.get("postalCode"),
            country=data.get("country"),
            phone=data.get("phone"),
            residential=data.get("residential"),
        )

    def parse_order(self, data: dict) -> RemoteOrder:
        """Parse a ShipStation order resource."""
        status = data.get("orderStatus")
        if status not in REST_STATUSES.values():
            status = RemoteStatus.AWAITING_SHIPMENT.value
        return RemoteOrder(
            order_id=_str_or_none(data.get("orderId")),
            order_key=data.get("orderKey"),
            order_number=str(data.get("orderNumber") or ""),
            order_date=parse_remote_timestamp(data.get("orderDate")),
            status=RemoteStatus(status),
            customer_email=data.get("customerEmail"),
            ship_to=self._parse_address(data.get("shipTo")),
            bill_to=self._parse_address(data.get("billTo")),
            carrier_code=data.get("carrierCode"),
            service_code=data.get("serviceCode"),
            package_code=data.get("packageCode"),
        )

    def parse_shipment(self, data: dict) -> RemoteShipment:
        """Parse a ShipStation shipment resource."""
        return RemoteShipment(
            shipment_id=str(data["shipmentId"]),
            order_id=_str_or_none(data.get("orderId")),
            order_number=data.get("orderNumber"),
            tracking_number=data.get("trackingNumber"),
            create_date=parse_remote_timestamp(data.get("createDate")),
            ship_date=parse_remote_timestamp(data.get("shipDate")),
            carrier_code=data.get("carrierCode"),
            service_code=data.get("serviceCode"),
            ship_to=self._parse_address(data.get("shipTo")),
        )

    # RemoteGateway

    def create_order(self, order: RemoteOrder) -> RemoteOrder:
        """Create an order, or update the one sharing its order key."""
        logger.info(f"Sending order {order.order_number} to ShipStation")
        data = self._make_request("POST", "/orders/createorder", payload=self.render_order(order))
        return order.model_copy(
            update={
                "order_id": _str_or_none(data.get("orderId")),
                "order_key": data.get("orderKey") or order.order_key,
            }
        )

    def update_order(self, order: RemoteOrder) -> RemoteOrder:
        """Update an order; createorder upserts on a known order key."""
        if not order.order_key:
            raise ValueError(f"Order {order.order_number} has no order key to update")
        return self.create_order(order)

    def find_order(self, order_number: str) -> RemoteOrder | None:
        """Find the order with exactly this order number."""
        # orderNumber filters by prefix, so confirm the exact match
        data = self._make_request("GET", "/orders", params={"orderNumber": order_number})
        for order in (data or {}).get("orders", []):
            if str(order.get("orderNumber")) == order_number:
                return self.parse_order(order)
        return None

    def get_order(self, order_id: str) -> RemoteOrder | None:
        try:
            data = self._make_request("GET", f"/orders/{order_id}")
        except RemoteApiError as e:
            if e.is_not_found:
                return None
            raise
        return self.parse_order(data) if data else None

    def list_shipments(self, query_date: date, page: int, page_size: int) -> ShipmentPage:
        """List shipments shipped on or after the query date."""
        params = {
            "shipDateStart": query_date.isoformat(),
            "page": page,
            "pageSize": page_size,
            "sortBy": "ShipDate",
            "sortDir": "ASC",
        }
        data = self._make_request("GET", "/shipments", params=params) or {}

        shipments = []
        for item in data.get("shipments") or []:
            if item.get("voided"):
                continue
            shipments.append(self.parse_shipment(item))

        return ShipmentPage(
            shipments=shipments,
            page=int(data.get("page") or page),
            pages=int(data.get("pages") or 1),
        )

    def list_carriers(self) -> list[CodeEntry]:
        data = self._make_request("GET", "/carriers") or []
        return [CodeEntry(code=c["code"], name=c["name"]) for c in data]

    def list_services(self, carrier_code: str) -> list[CodeEntry]:
        data = self._make_request(
            "GET", "/carriers/listservices", params={"carrierCode": carrier_code}
        ) or []
        return [
            CodeEntry(code=s["code"], name=s["name"], carrier_code=s.get("carrierCode"))
            for s in data
        ]

    def list_packages(self, carrier_code: str) -> list[CodeEntry]:
        data = self._make_request(
            "GET", "/carriers/listpackages", params={"carrierCode": carrier_code}
        ) or []
        return [
            CodeEntry(code=p["code"], name=p["name"], carrier_code=p.get("carrierCode"))
            for p in data
        ]
