"""
Tests for the ShipStation OData client.
"""

from datetime import UTC, date, datetime
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest

from fakes import mock_response
from shipstation_endpoint.adapters.shipstation_odata import (
    ShipStationODataClient,
    format_odata_date,
    quote_literal,
)
from shipstation_endpoint.common.errors import RemoteApiError
from shipstation_endpoint.models import (
    HubParameters,
    RemoteAddress,
    RemoteLineItem,
    RemoteOrder,
    RemoteStatus,
)
from shipstation_endpoint.utils.time_windows import parse_remote_timestamp

PACIFIC = ZoneInfo("America/Los_Angeles")


@pytest.fixture
def client() -> ShipStationODataClient:
    return ShipStationODataClient(HubParameters(username="user", password="pass"), remote_tz=PACIFIC)


@pytest.fixture
def order() -> RemoteOrder:
    return RemoteOrder(
        order_number="R154085346",
        order_date=datetime(2014, 6, 2, 15, 38, 23, tzinfo=UTC),
        status=RemoteStatus.ON_HOLD,
        customer_email="spree@example.com",
        store_id="42",
        carrier_code="3",
        service_code="27",
        order_total=91.5,
        custom_fields=["gift wrap"],
        ship_to=RemoteAddress(name="Bruno Buccolo", street1="Rua Canario, 183", country="BR"),
        items=[
            RemoteLineItem(sku="SHIRT", name="Shirt", quantity=2, unit_price="9.0", options="size:L\n"),
            RemoteLineItem(sku="HAT", name="Hat", quantity=1, unit_price="5.0"),
        ],
    )


class TestODataFormatting:
    def test_odata_date_uses_remote_wall_clock(self):
        # 2014-06-02 08:38:23 in Los Angeles, serialized as if it were UTC
        assert format_odata_date(datetime(2014, 6, 2, 15, 38, 23, tzinfo=UTC), PACIFIC) == (
            "/Date(1401698303000)/"
        )

    def test_odata_date_round_trip(self):
        rendered = format_odata_date(datetime(2014, 11, 28, 17, 0, 0), PACIFIC)

        assert parse_remote_timestamp(rendered) == datetime(2014, 11, 28, 17, 0, 0)

    def test_quote_literal(self):
        assert quote_literal("O'Brien") == "'O''Brien'"


class TestRenderOrder:
    def test_render_order(self, client, order):
        payload = client.render_order(order)

        assert payload["OrderNumber"] == "R154085346"
        assert payload["OrderStatusID"] == 5
        assert payload["StoreID"] == 42
        assert payload["ProviderID"] == 3
        assert payload["ServiceID"] == 27
        assert payload["OrderTotal"] == "91.5"
        assert payload["CustomField1"] == "gift wrap"
        assert payload["ShipName"] == "Bruno Buccolo"
        assert payload["ShipCountryCode"] == "BR"
        assert "BillName" not in payload
        assert "PackageTypeID" not in payload

    def test_render_item(self, client, order):
        assert client.render_item(order.items[0], "77") == {
            "OrderID": 77,
            "SKU": "SHIRT",
            "Description": "Shirt",
            "Quantity": 2,
            "UnitPrice": "9.0",
            "Options": "size:L\n",
        }


class TestOrders:
    """Test cases for the multi-call order flows."""

    def test_create_order_posts_order_then_items(self, client, order):
        responses = [
            mock_response(201, {"d": {"OrderID": 77}}),
            mock_response(201, {"d": {"OrderItemID": 1}}),
            mock_response(201, {"d": {"OrderItemID": 2}}),
        ]
        with patch.object(client.session, "request", side_effect=responses) as mock_request:
            created = client.create_order(order)

        assert created.order_id == "77"
        urls = [call.kwargs["url"] for call in mock_request.call_args_list]
        assert urls == [
            "https://data.shipstation.com/1.1/Orders",
            "https://data.shipstation.com/1.1/OrderItems",
            "https://data.shipstation.com/1.1/OrderItems",
        ]

    def test_failed_item_deletes_order(self, client, order):
        responses = [
            mock_response(201, {"d": {"OrderID": 77}}),
            mock_response(400, text="Bad item"),
            mock_response(204),
        ]
        with patch.object(client.session, "request", side_effect=responses) as mock_request:
            with pytest.raises(RemoteApiError, match="Bad item"):
                client.create_order(order)

        last = mock_request.call_args_list[-1]
        assert last.kwargs["method"] == "DELETE"
        assert last.kwargs["url"] == "https://data.shipstation.com/1.1/Orders(77)"

    def test_update_creates_new_items_before_deleting_old(self, client, order):
        existing = order.model_copy(update={"order_id": "77", "items": order.items[:1]})
        responses = [
            mock_response(204),
            mock_response(200, {"d": {"results": [{"OrderItemID": 5}]}}),
            mock_response(201, {"d": {"OrderItemID": 6}}),
            mock_response(204),
        ]
        with patch.object(client.session, "request", side_effect=responses) as mock_request:
            client.update_order(existing)

        calls = [(call.kwargs["method"], call.kwargs["url"]) for call in mock_request.call_args_list]
        base = "https://data.shipstation.com/1.1"
        assert calls == [
            ("POST", f"{base}/Orders(77)"),
            ("GET", f"{base}/OrderItems"),
            ("POST", f"{base}/OrderItems"),
            ("DELETE", f"{base}/OrderItems(5)"),
        ]
        assert mock_request.call_args_list[0].kwargs["headers"] == {"X-HTTP-Method": "MERGE"}

    def test_find_order(self, client):
        entity = {"OrderID": 77, "OrderNumber": "R154085346", "OrderStatusID": 3, "ShipStreet1": "Rua"}
        with patch.object(client.session, "request") as mock_request:
            mock_request.return_value = mock_response(200, {"d": {"results": [entity]}})

            found = client.find_order("R154085346")

        assert found.order_id == "77"
        assert found.status is RemoteStatus.SHIPPED
        assert mock_request.call_args.kwargs["params"]["$filter"] == "OrderNumber eq 'R154085346'"


class TestListShipments:
    def test_pages_from_inline_count(self, client):
        payload = {
            "d": {
                "results": [
                    {
                        "ShipmentID": 9,
                        "OrderID": 77,
                        "CreateDate": "/Date(1417194000000)/",
                        "ShipDate": "/Date(1417132800000)/",
                        "TrackingNumber": "1Z",
                    }
                ],
                "__count": "250",
            }
        }
        with patch.object(client.session, "request") as mock_request:
            mock_request.return_value = mock_response(200, payload)

            page = client.list_shipments(date(2014, 11, 28), 2, 100)

        params = mock_request.call_args.kwargs["params"]
        assert params["$filter"] == "ShipDate ge datetime'2014-11-28T00:00:00' and ShipDate ne null"
        assert params["$skip"] == 100
        assert page.page == 2
        assert page.pages == 3
        shipment = page.shipments[0]
        assert shipment.order_id == "77"
        assert shipment.order_number is None
        assert shipment.create_date == datetime(2014, 11, 28, 17, 0, 0)

    def test_pages_without_count(self, client):
        with patch.object(client.session, "request") as mock_request:
            mock_request.return_value = mock_response(200, {"d": {"results": []}})

            page = client.list_shipments(date(2014, 11, 28), 1, 100)

        assert page.pages == 1
        assert page.shipments == []
