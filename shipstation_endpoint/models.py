"""
Data models for the ShipStation endpoint.

Hub-facing models parse the hub's JSON envelopes; remote models are the
generation-independent ShipStation representation the gateways render into
their own wire formats.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class HubModel(BaseModel):
    """Base for payloads received from the hub."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class NormalizedAddress(HubModel):
    firstname: str | None = None
    lastname: str | None = None
    address1: str | None = None
    address2: str | None = None
    address3: str | None = None
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None
    country: str | None = None
    phone: str | None = None
    company: str | None = None
    residential: bool | None = None


class NormalizedLineItem(HubModel):
    name: str | None = None
    product_id: str | None = None
    quantity: int = 1
    price: Decimal | None = None
    image_url: str | None = None
    properties: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("properties", "options")
    )


class ShipmentTotals(HubModel):
    order: float | None = None
    shipping: float | None = None
    tax: float | None = None
    payment: float | None = None


class NormalizedShipment(HubModel):
    """Shipment as sent by the hub."""

    id: str
    email: str | None = None
    delivery_instructions: str | None = None
    status: str | None = None
    hold_until: datetime | None = None
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("created_at", "placed_on")
    )
    shipping_address: NormalizedAddress | None = None
    billing_address: NormalizedAddress | None = None
    items: list[NormalizedLineItem] = Field(
        default_factory=list, validation_alias=AliasChoices("items", "line_items")
    )
    shipping_carrier: str | None = None
    shipping_method: str | None = None
    package: str | None = None
    requested_shipping_service: str | None = None
    totals: ShipmentTotals | None = None
    gift: bool | None = None
    gift_message: str | None = None
    custom_fields: list[str] = Field(default_factory=list, max_length=3)
    confirmation: str | None = None
    contains_alcohol: bool | None = None
    saturday_delivery: bool | None = None
    non_machinable: bool | None = None
    internal_notes: str | None = None
    weight: float | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Hub ids arrive as strings or numbers
        return str(value) if isinstance(value, int) else value

    @field_validator("items", mode="before")
    @classmethod
    def _none_items(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("created_at", "hold_until")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Hub timestamps without an offset are UTC, like the since parameter
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def normalized_status(self) -> str:
        return (self.status or "").strip().lower()


class HubParameters(HubModel):
    """Per-request parameters the hub sends with every call."""

    username: str | None = None
    password: str | None = None
    key: str | None = None
    secret: str | None = None
    authorization: str | None = None
    mashape_key: str | None = None
    shipstation_store_id: str | None = None
    marketplace_id: str | None = None
    x_partner: str | None = None
    since: str | None = None
    page: int | None = None
    page_size: int | None = None

    @field_validator("shipstation_store_id", "marketplace_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class HubRequest(HubModel):
    request_id: str | None = None
    parameters: HubParameters = Field(default_factory=HubParameters)


class ShipmentRequest(HubRequest):
    shipment: NormalizedShipment | None = Field(
        default=None, validation_alias=AliasChoices("shipment", "order")
    )


class RemoteStatus(str, Enum):
    """ShipStation order statuses, independent of API generation."""

    AWAITING_PAYMENT = "awaiting_payment"
    AWAITING_SHIPMENT = "awaiting_shipment"
    SHIPPED = "shipped"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class RemoteAddress(BaseModel):
    name: str | None = None
    company: str | None = None
    street1: str | None = None
    street2: str | None = None
    street3: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    phone: str | None = None
    residential: bool | None = None


class RemoteLineItem(BaseModel):
    line_item_key: str | None = None
    sku: str | None = None
    name: str | None = None
    quantity: int = 1
    unit_price: str | float | None = None
    image_url: str | None = None
    # key:value lines, one per property
    options: str | None = None
    option_pairs: list[tuple[str, str]] = Field(default_factory=list)


class RemoteOrder(BaseModel):
    """ShipStation order, ready for a gateway to render."""

    order_id: str | None = None
    order_key: str | None = None
    order_number: str
    order_date: datetime | None = None
    payment_date: datetime | None = None
    status: RemoteStatus = RemoteStatus.AWAITING_SHIPMENT
    hold_until_date: datetime | None = None
    customer_email: str | None = None
    customer_notes: str | None = None
    internal_notes: str | None = None
    ship_to: RemoteAddress | None = None
    bill_to: RemoteAddress | None = None
    items: list[RemoteLineItem] = Field(default_factory=list)
    order_total: float | None = None
    amount_paid: float | None = None
    tax_amount: float | None = None
    shipping_amount: float | None = None
    gift: bool | None = None
    gift_message: str | None = None
    requested_shipping_service: str | None = None
    carrier_code: str | None = None
    service_code: str | None = None
    package_code: str | None = None
    confirmation: str | None = None
    weight_ounces: float | None = None
    store_id: str | None = None
    marketplace_id: str | None = None
    custom_fields: list[str] = Field(default_factory=list)
    contains_alcohol: bool | None = None
    saturday_delivery: bool | None = None
    non_machinable: bool | None = None


class RemoteShipment(BaseModel):
    shipment_id: str
    order_id: str | None = None
    order_number: str | None = None
    tracking_number: str | None = None
    # Naive values are wall-clock times in ShipStation's reporting zone
    create_date: datetime | None = None
    ship_date: datetime | None = None
    carrier_code: str | None = None
    service_code: str | None = None
    ship_to: RemoteAddress | None = None


class ShipmentPage(BaseModel):
    shipments: list[RemoteShipment] = Field(default_factory=list)
    page: int = 1
    pages: int = 1


class CodeEntry(BaseModel):
    """Named code from a carrier, service or package listing."""

    code: str
    name: str
    carrier_code: str | None = None


class SyncCursor(BaseModel):
    """Polling watermark owned by the hub and echoed back after each poll."""

    model_config = ConfigDict(frozen=True)

    since: datetime
    page: int = Field(default=1, ge=1)


class ShipmentUpdate(BaseModel):
    """Shipment reported back to the hub."""

    id: str
    order_id: str
    status: Literal["shipped"] = "shipped"
    tracking: str | None = None
    shipstation_id: str
    shipped_at: str | None = None
    shipping_carrier: str | None = None
    shipping_method: str | None = None
    shipping_address: NormalizedAddress | None = None


class SkippedUpdate(BaseModel):
    """Update intentionally not sent to ShipStation."""

    shipment_id: str
    reason: str


class UpdateResult(BaseModel):
    outcome: Literal["transmitted", "not_found", "skipped"]
    shipment_id: str
    shipstation_id: str | None = None
    reason: str | None = None
