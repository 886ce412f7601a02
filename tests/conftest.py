"""Shared fixtures for the ShipStation endpoint tests."""

import pytest

from fakes import FakeGateway
from shipstation_endpoint.models import HubParameters, NormalizedShipment


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def parameters() -> HubParameters:
    return HubParameters(key="api_key", secret="api_secret", shipstation_store_id="42")


@pytest.fixture
def shipment_payload() -> dict:
    """Hub shipment as posted to /add_shipment."""
    return {
        "id": "R154085346",
        "email": "spree@example.com",
        "delivery_instructions": "Leave at the door",
        "status": "ready",
        "created_at": "2014-06-02T15:38:23Z",
        "shipping_address": {
            "firstname": "Bruno",
            "lastname": "Buccolo",
            "address1": "Rua Canario, 183",
            "address2": "",
            "zipcode": "01155-030",
            "city": "São Paulo",
            "state": "SP",
            "country": "BR",
            "phone": "5511955111091",
        },
        "items": [
            {
                "name": "Spree T-Shirt",
                "product_id": "SPREE-T-SHIRT",
                "quantity": 9,
                "price": 9,
                "options": {},
            }
        ],
        "shipping_carrier": "UPS",
        "shipping_method": "UPS Ground",
    }


@pytest.fixture
def shipment(shipment_payload) -> NormalizedShipment:
    return NormalizedShipment.model_validate(shipment_payload)
