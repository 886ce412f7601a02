"""Exceptions raised while translating hub requests for ShipStation."""


class ShipStationEndpointError(Exception):
    """Base exception for the ShipStation endpoint."""

    pass


class InvalidShipmentError(ShipStationEndpointError):
    """Hub payload is missing data ShipStation requires."""

    pass


class ConfigurationError(ShipStationEndpointError):
    """Request parameters cannot be used to reach ShipStation."""

    pass


class CodeLookupError(ShipStationEndpointError):
    """Carrier, service or package name has no ShipStation code."""

    def __init__(self, kind: str, name: str, scope: str | None = None):
        self.kind = kind
        self.name = name
        self.scope = scope
        message = f"ShipStation {kind} not found: {name!r}"
        if scope:
            message += f" (carrier {scope})"
        super().__init__(message)


class RemoteApiError(ShipStationEndpointError):
    """Non-2xx response from the ShipStation API."""

    def __init__(self, status_code: int, body: str, url: str | None = None):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"{status_code} {body}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404
