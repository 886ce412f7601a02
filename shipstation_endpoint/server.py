"""
HTTP endpoints for the hub.

Accepts the hub's JSON envelopes, hands shipments to the order assembly and
shipment poll, and translates results and failures back into the hub's
response envelope. Also serves health and Prometheus metrics endpoints.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .adapters.base import create_gateway
from .common.errors import RemoteApiError
from .config.loader import cfg, get_fallback_credentials, get_shipstation_settings
from .jobs.shipment_poll import cursor_to_parameters, run_shipment_poll
from .mapping.orders import create_shipment, is_nop_update, update_shipment
from .models import HubParameters, HubRequest, ShipmentRequest
from .utils.time_windows import format_duration

logger = logging.getLogger(__name__)

SERVICE_NAME = "ShipStation Endpoint"
VERSION = "1.0.0"

FAILURE_PREFIXES = {
    "add_order": "Unable to transmit shipment to ShipStation",
    "add_shipment": "Unable to transmit shipment to ShipStation",
    "update_shipment": "Unable to update shipment in ShipStation",
    "get_shipments": "Unable to get shipments from ShipStation",
}

# Prometheus metrics
REGISTRY = CollectorRegistry()

hub_requests_total = Counter(
    "hub_requests_total",
    "Total number of hub requests",
    ["endpoint", "status"],
    registry=REGISTRY,
)

hub_request_duration_seconds = Histogram(
    "hub_request_duration_seconds",
    "Hub request duration in seconds",
    ["endpoint"],
    registry=REGISTRY,
)

shipments_polled_total = Counter(
    "shipments_polled_total",
    "Total number of shipments reported to the hub",
    registry=REGISTRY,
)

_app_start_time = datetime.now(UTC)


def record_request(endpoint: str, status_code: int, start_time: float) -> None:
    """Record hub request metrics."""
    duration = time.monotonic() - start_time
    hub_requests_total.labels(endpoint=endpoint, status=str(status_code)).inc()
    hub_request_duration_seconds.labels(endpoint=endpoint).observe(duration)
    logger.info(f"{endpoint} answered {status_code} in {format_duration(timedelta(seconds=duration))}")


def with_fallback_credentials(parameters: HubParameters) -> HubParameters:
    """Fill in credentials and store id from the environment when the hub sent none."""
    has_credentials = (
        (parameters.key and parameters.secret)
        or (parameters.username and parameters.password)
        or parameters.authorization
    )
    fallback = get_fallback_credentials()
    updates = {}
    if not has_credentials and fallback.get("key") and fallback.get("secret"):
        updates.update(key=fallback["key"], secret=fallback["secret"])
    if not parameters.shipstation_store_id and fallback.get("shipstation_store_id"):
        updates["shipstation_store_id"] = fallback["shipstation_store_id"]
    return parameters.model_copy(update=updates) if updates else parameters


def hub_response(
    status_code: int, request_id: str | None, summary: str | None = None, **objects: Any
) -> JSONResponse:
    """Build a hub response envelope; summary is left out when None."""
    content: dict[str, Any] = {"request_id": request_id}
    if summary is not None:
        content["summary"] = summary
    content.update(objects)
    return JSONResponse(status_code=status_code, content=content)


def failure_summary(prefix: str, error: Exception) -> str:
    if isinstance(error, RemoteApiError):
        return f"{prefix}, API error: {error}"
    return f"{prefix}. Error: {error}"


def report_failure(endpoint: str, prefix: str, error: Exception, request_id: str | None) -> JSONResponse:
    """Log a failed request for error tracking and build the 500 envelope."""
    summary = failure_summary(prefix, error)
    logger.error(
        f"{endpoint} failed: {summary}",
        extra={"endpoint": endpoint, "request_id": request_id},
        exc_info=error,
    )
    return hub_response(500, request_id, summary)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager."""
    logger.info("Starting ShipStation endpoint")
    yield
    logger.info("Stopping ShipStation endpoint")


app = FastAPI(
    title=SERVICE_NAME,
    description="Translates hub shipments to and from ShipStation",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer bodies that are not a JSON object with the hub failure envelope."""
    start_time = time.monotonic()
    endpoint = request.url.path.strip("/")
    prefix = FAILURE_PREFIXES.get(endpoint, "Unable to process request")
    messages = "; ".join(error.get("msg", "invalid") for error in exc.errors())

    response = report_failure(endpoint, prefix, ValueError(f"Invalid request body: {messages}"), None)
    record_request(endpoint, response.status_code, start_time)
    return response


@app.get("/")
def root():
    """Root endpoint with service info."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "endpoints": ["/add_order", "/add_shipment", "/update_shipment", "/get_shipments"],
    }


@app.get("/healthz")
def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": (datetime.now(UTC) - _app_start_time).total_seconds(),
    }


@app.get("/metrics", response_class=PlainTextResponse)
def metrics():
    """Prometheus metrics endpoint."""
    if not cfg("observability.metrics.enabled", True):
        return PlainTextResponse("", status_code=404)
    return PlainTextResponse(generate_latest(REGISTRY).decode())


def _transmit(body: dict, endpoint: str, success: str) -> JSONResponse:
    start_time = time.monotonic()
    request_id = body.get("request_id")
    prefix = FAILURE_PREFIXES[endpoint]

    try:
        request = ShipmentRequest.model_validate(body)
        if request.shipment is None:
            raise ValueError("shipment required")
        parameters = with_fallback_credentials(request.parameters)
        gateway = create_gateway(parameters, get_shipstation_settings())
        order = create_shipment(request.shipment, gateway, parameters)
    except Exception as e:
        response = report_failure(endpoint, prefix, e, request_id)
    else:
        response = hub_response(
            200,
            request_id,
            f"{success}: {order.order_id}",
            order={"id": request.shipment.id, "shipstation_id": order.order_id},
        )

    record_request(endpoint, response.status_code, start_time)
    return response


@app.post("/add_order")
def add_order(body: dict[str, Any] = Body(...)):
    """Create a ShipStation order for a hub order."""
    return _transmit(body, "add_order", "Order created in ShipStation")


@app.post("/add_shipment")
def add_shipment(body: dict[str, Any] = Body(...)):
    """Create a ShipStation order for a hub shipment."""
    return _transmit(body, "add_shipment", "Shipment transmitted to ShipStation")


@app.post("/update_shipment")
def update_shipment_endpoint(body: dict[str, Any] = Body(...)):
    """Send a hub shipment update to the matching ShipStation order."""
    start_time = time.monotonic()
    request_id = body.get("request_id")

    try:
        request = ShipmentRequest.model_validate(body)
        if request.shipment is None:
            raise ValueError("shipment required")
        shipment = request.shipment

        if is_nop_update(shipment):
            # Answered before any gateway exists so nothing reaches ShipStation
            result = update_shipment(shipment, None, request.parameters)
        else:
            parameters = with_fallback_credentials(request.parameters)
            gateway = create_gateway(parameters, get_shipstation_settings())
            result = update_shipment(shipment, gateway, parameters)
    except Exception as e:
        response = report_failure(
            "update_shipment", FAILURE_PREFIXES["update_shipment"], e, request_id
        )
    else:
        if result.outcome == "skipped":
            summary = f"Can't update shipment {result.shipment_id} in ShipStation: {result.reason}"
        elif result.outcome == "not_found":
            summary = f"Shipment {result.shipment_id} not found in ShipStation"
        else:
            summary = f"Shipment update transmitted in ShipStation: {result.shipstation_id}"
        response = hub_response(200, request_id, summary)

    record_request("update_shipment", response.status_code, start_time)
    return response


@app.post("/get_shipments")
def get_shipments(body: dict[str, Any] = Body(...)):
    """Report shipments created since the hub's watermark."""
    start_time = time.monotonic()
    request_id = body.get("request_id")

    try:
        request = HubRequest.model_validate(body)
        result = run_shipment_poll(with_fallback_credentials(request.parameters))
    except Exception as e:
        response = report_failure(
            "get_shipments", FAILURE_PREFIXES["get_shipments"], e, request_id
        )
    else:
        shipments_polled_total.inc(len(result.updates))

        summary = None
        if result.updates:
            summary = f"Retrieved {len(result.updates)} shipments from ShipStation"
        response = hub_response(
            206 if result.more_pages else 200,
            request_id,
            summary,
            shipments=[update.model_dump(mode="json", exclude_none=True) for update in result.updates],
            parameters=cursor_to_parameters(result.next_cursor),
        )

    record_request("get_shipments", response.status_code, start_time)
    return response
