"""
Address mapping between hub addresses and ShipStation addresses.

ShipStation rejects orders whose ship-to lacks a name, street, city, state,
postal code or country, so those are checked here before anything is sent.
"""

import logging

from ..common.errors import InvalidShipmentError
from ..models import NormalizedAddress, RemoteAddress

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "street1", "city", "state", "postal_code", "country")


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def full_name(address: NormalizedAddress) -> str | None:
    """Join first and last name, skipping blanks."""
    parts = [_clean(address.firstname), _clean(address.lastname)]
    return " ".join(part for part in parts if part) or None


def to_remote(address: NormalizedAddress, role: str = "shipping_address") -> RemoteAddress:
    """
    Convert a hub address into a ShipStation address.

    Args:
        address: Hub address
        role: Name of the address in the hub payload, used in error messages

    Returns:
        ShipStation address with blank optional fields dropped

    Raises:
        InvalidShipmentError: If any field ShipStation requires is missing
    """
    remote = RemoteAddress(
        name=full_name(address),
        company=_clean(address.company),
        street1=_clean(address.address1),
        street2=_clean(address.address2),
        street3=_clean(address.address3),
        city=_clean(address.city),
        state=_clean(address.state),
        postal_code=_clean(address.zipcode),
        country=_clean(address.country),
        phone=_clean(address.phone),
        residential=address.residential,
    )

    missing = [field for field in REQUIRED_FIELDS if getattr(remote, field) is None]
    if missing:
        raise InvalidShipmentError(f"{role} missing required fields: {', '.join(missing)}")

    return remote


def from_remote(remote: RemoteAddress) -> NormalizedAddress:
    """
    Convert a ShipStation address back into a hub address.

    The full name is split on whitespace: the first token becomes the first
    name and the last token the last name. Middle names are dropped.
    """
    firstname = lastname = None
    tokens = (remote.name or "").split()
    if tokens:
        firstname = tokens[0]
    if len(tokens) > 1:
        lastname = tokens[-1]

    return NormalizedAddress(
        firstname=firstname,
        lastname=lastname,
        company=remote.company,
        address1=remote.street1,
        address2=remote.street2,
        address3=remote.street3,
        city=remote.city,
        state=remote.state,
        zipcode=remote.postal_code,
        country=remote.country,
        phone=remote.phone,
        residential=remote.residential,
    )
