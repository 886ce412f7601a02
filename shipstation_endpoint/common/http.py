"""
Shared HTTP utilities for the ShipStation gateways.

Provides the single request helper every gateway goes through, translating
non-2xx responses into RemoteApiError, plus auth header construction for
the supported credential schemes.
"""

import base64
import logging
from typing import Any, Dict, Optional, Union

import requests

from .errors import ConfigurationError, RemoteApiError

logger = logging.getLogger(__name__)

USER_AGENT = "ShipStation-Endpoint/1.0"


def basic_auth_value(username: str, password: str) -> str:
    """Encode a username/password pair as a Basic Authorization value."""
    token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {token}"


def build_auth_headers(parameters: Any) -> Dict[str, str]:
    """
    Build ShipStation auth headers from hub parameters.

    Supports the mutually exclusive schemes of each API generation: an
    API key/secret pair, an OData username/password pair, or a pre-shared
    authorization token sent verbatim. The gateway key and partner id are
    attached when configured.

    Args:
        parameters: HubParameters (or any object with the same attributes)

    Returns:
        Dictionary of headers to add to the session

    Raises:
        ConfigurationError: If no usable credentials are present
    """
    headers: Dict[str, str] = {}

    if parameters.key and parameters.secret:
        headers["Authorization"] = basic_auth_value(parameters.key, parameters.secret)
    elif parameters.username and parameters.password:
        headers["Authorization"] = basic_auth_value(parameters.username, parameters.password)
    elif parameters.authorization:
        headers["Authorization"] = parameters.authorization
    else:
        raise ConfigurationError(
            "ShipStation credentials required: key/secret, username/password or authorization"
        )

    if parameters.mashape_key:
        headers["X-Mashape-Key"] = parameters.mashape_key
    if parameters.x_partner:
        headers["x-partner"] = parameters.x_partner

    return headers


def request_json(
    session: requests.Session,
    method: str,
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    json: Optional[Union[Dict[str, Any], list]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 300,
) -> Any:
    """
    Make an HTTP request and decode the JSON response.

    Args:
        session: Requests session carrying the auth headers
        method: HTTP method (GET, POST, etc.)
        url: Full URL to request
        params: Query parameters
        json: JSON data for request body
        headers: Additional headers (merged with session headers)
        timeout: Request timeout in seconds

    Returns:
        Decoded JSON body, or None for an empty body

    Raises:
        RemoteApiError: For any non-2xx response
        requests.RequestException: For connection failures and timeouts
    """
    logger.debug(f"ShipStation API request: {method} {url}")

    response = session.request(
        method=method,
        url=url,
        params=params,
        json=json,
        headers=headers,
        timeout=timeout,
    )

    if not 200 <= response.status_code < 300:
        logger.error(f"ShipStation API error {response.status_code} for {method} {url}: {response.text}")
        raise RemoteApiError(response.status_code, response.text, url=url)

    if not response.content:
        return None

    return response.json()
