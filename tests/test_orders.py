"""
Tests for order assembly, code resolution and the create/update flows.

Uses the in-memory FakeGateway so every remote call can be counted.
"""

from datetime import UTC, datetime

import pytest

from shipstation_endpoint.common.errors import CodeLookupError, InvalidShipmentError
from shipstation_endpoint.mapping.codes import CodeResolver
from shipstation_endpoint.mapping.orders import (
    build_create_request,
    build_update_request,
    create_shipment,
    map_status,
    update_shipment,
)
from shipstation_endpoint.models import NormalizedShipment, RemoteStatus, SkippedUpdate


def _shipment(payload: dict, **changes) -> NormalizedShipment:
    return NormalizedShipment.model_validate({**payload, **changes})


class TestStatusMapping:
    @pytest.mark.parametrize(
        "status, expected",
        [
            ("hold", RemoteStatus.ON_HOLD),
            ("cancelled", RemoteStatus.CANCELLED),
            ("canceled", RemoteStatus.CANCELLED),
            ("open", RemoteStatus.AWAITING_SHIPMENT),
            ("ready", RemoteStatus.AWAITING_SHIPMENT),
            (None, RemoteStatus.AWAITING_SHIPMENT),
        ],
    )
    def test_map_status(self, status, expected):
        assert map_status(status) is expected


class TestCodeResolver:
    def test_resolve_carrier(self, gateway):
        assert CodeResolver(gateway).resolve_carrier("UPS") == "ups"

    def test_resolution_is_consistent(self, gateway):
        resolver = CodeResolver(gateway)

        assert resolver.resolve_carrier("FedEx") == resolver.resolve_carrier("FedEx")
        # No caching: each resolution lists carriers again
        assert gateway.calls.count(("list_carriers",)) == 2

    def test_match_is_case_sensitive(self, gateway):
        with pytest.raises(CodeLookupError, match="carrier"):
            CodeResolver(gateway).resolve_carrier("ups")

    def test_unknown_service_names_carrier(self, gateway):
        with pytest.raises(CodeLookupError) as exc_info:
            CodeResolver(gateway).resolve_service("ups", "UPS Teleport")

        assert exc_info.value.kind == "service"
        assert exc_info.value.name == "UPS Teleport"
        assert "ups" in str(exc_info.value)

    def test_resolve_package(self, gateway):
        assert CodeResolver(gateway).resolve_package("ups", "Package") == "package"


class TestBuildCreateRequest:
    """Test cases for building ShipStation orders from hub shipments."""

    def test_basic_order(self, gateway, parameters, shipment):
        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.order_number == "R154085346"
        assert order.order_key == "R154085346"
        assert order.status is RemoteStatus.AWAITING_SHIPMENT
        assert order.customer_email == "spree@example.com"
        assert order.customer_notes == "Leave at the door"
        assert order.order_date == datetime(2014, 6, 2, 15, 38, 23, tzinfo=UTC)
        assert order.ship_to.name == "Bruno Buccolo"
        assert order.carrier_code == "ups"
        assert order.service_code == "ups_ground"
        assert order.package_code is None
        assert order.store_id == "42"
        assert len(order.items) == 1

    def test_billing_defaults_to_shipping(self, gateway, parameters, shipment):
        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.bill_to == order.ship_to

    def test_billing_address_used_when_present(self, gateway, parameters, shipment_payload):
        billing = {**shipment_payload["shipping_address"], "firstname": "Ana", "city": "Santos"}
        shipment = _shipment(shipment_payload, billing_address=billing)

        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.bill_to.name == "Ana Buccolo"
        assert order.bill_to.city == "Santos"

    def test_missing_shipping_address(self, gateway, parameters, shipment_payload):
        shipment = _shipment(shipment_payload, shipping_address=None)

        with pytest.raises(InvalidShipmentError, match="shipping_address required"):
            build_create_request(shipment, CodeResolver(gateway), parameters)

        assert gateway.calls == []

    def test_hold_sets_hold_until(self, gateway, parameters, shipment_payload):
        shipment = _shipment(shipment_payload, status="hold", hold_until="2014-06-10T00:00:00Z")

        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.status is RemoteStatus.ON_HOLD
        assert order.hold_until_date == datetime(2014, 6, 10, tzinfo=UTC)

    def test_timestamps_without_offset_are_utc(self, gateway, parameters, shipment_payload):
        shipment = _shipment(
            shipment_payload,
            status="hold",
            created_at="2014-06-02T15:38:23",
            hold_until="2014-06-10T00:00:00",
        )

        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.order_date == datetime(2014, 6, 2, 15, 38, 23, tzinfo=UTC)
        assert order.hold_until_date == datetime(2014, 6, 10, tzinfo=UTC)

    def test_hold_until_ignored_when_not_held(self, gateway, parameters, shipment_payload):
        shipment = _shipment(shipment_payload, hold_until="2014-06-10T00:00:00Z")

        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.hold_until_date is None

    def test_requested_service_skips_resolution(self, gateway, parameters, shipment_payload):
        shipment = _shipment(shipment_payload, requested_shipping_service="Cucamonga Express")

        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.requested_shipping_service == "Cucamonga Express"
        assert order.carrier_code is None
        assert order.service_code is None
        assert gateway.calls == []

    def test_no_carrier_no_resolution(self, gateway, parameters, shipment_payload):
        shipment = _shipment(shipment_payload, shipping_carrier=None)

        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.carrier_code is None
        assert gateway.calls == []

    def test_package_resolved_only_when_named(self, gateway, parameters, shipment_payload):
        build_create_request(_shipment(shipment_payload), CodeResolver(gateway), parameters)
        assert not any(call[0] == "list_packages" for call in gateway.calls)

        order = build_create_request(
            _shipment(shipment_payload, package="Package"), CodeResolver(gateway), parameters
        )
        assert order.package_code == "package"

    def test_unknown_carrier(self, gateway, parameters, shipment_payload):
        shipment = _shipment(shipment_payload, shipping_carrier="Pony Express")

        with pytest.raises(CodeLookupError, match="Pony Express"):
            build_create_request(shipment, CodeResolver(gateway), parameters)

    def test_sparse_optional_fields(self, gateway, parameters, shipment):
        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.order_total is None
        assert order.amount_paid is None
        assert order.gift is None
        assert order.contains_alcohol is None
        assert order.custom_fields == []

    def test_optional_fields_carried(self, gateway, parameters, shipment_payload):
        shipment = _shipment(
            shipment_payload,
            totals={"order": 91.5, "shipping": 10, "tax": 0.5, "payment": 91.5},
            gift=True,
            gift_message="Happy birthday",
            custom_fields=["a", "b"],
            confirmation="signature",
            contains_alcohol=True,
            saturday_delivery=False,
        )

        order = build_create_request(shipment, CodeResolver(gateway), parameters)

        assert order.order_total == 91.5
        assert order.shipping_amount == 10
        assert order.tax_amount == 0.5
        assert order.amount_paid == 91.5
        assert order.gift is True
        assert order.gift_message == "Happy birthday"
        assert order.custom_fields == ["a", "b"]
        assert order.confirmation == "signature"
        assert order.contains_alcohol is True
        assert order.saturday_delivery is False
        assert order.non_machinable is None

    def test_prices_follow_generation(self, gateway, parameters, shipment):
        order = build_create_request(shipment, CodeResolver(gateway), parameters, prices_as_strings=True)

        assert order.items[0].unit_price == "9"


class TestUpdates:
    """Test cases for the update flow and its NOP policy."""

    def test_shipped_update_is_skipped(self, gateway, parameters, shipment_payload):
        shipment = _shipment(shipment_payload, status="shipped")

        result = update_shipment(shipment, gateway, parameters)

        assert result.outcome == "skipped"
        assert gateway.calls == []

    def test_build_update_request_skips_shipped(self, gateway, parameters, shipment_payload):
        shipment = _shipment(shipment_payload, status="shipped")
        existing = create_shipment(_shipment(shipment_payload), gateway, parameters)
        gateway.calls.clear()

        result = build_update_request(shipment, existing, CodeResolver(gateway), parameters)

        assert isinstance(result, SkippedUpdate)
        assert gateway.calls == []

    def test_update_not_found(self, gateway, parameters, shipment):
        result = update_shipment(shipment, gateway, parameters)

        assert result.outcome == "not_found"
        assert gateway.calls == [("find_order", "R154085346")]

    def test_update_transmitted(self, gateway, parameters, shipment_payload):
        created = create_shipment(_shipment(shipment_payload), gateway, parameters)

        result = update_shipment(
            _shipment(shipment_payload, shipping_method="UPS Next Day Air"), gateway, parameters
        )

        assert result.outcome == "transmitted"
        assert result.shipstation_id == created.order_id
        updated = gateway.orders[created.order_id]
        assert updated.service_code == "ups_next_day_air"
        assert updated.order_key == "R154085346"

    def test_create_shipment_assigns_id(self, gateway, parameters, shipment):
        order = create_shipment(shipment, gateway, parameters)

        assert order.order_id == "1001"
        assert ("create_order", "R154085346") in gateway.calls
