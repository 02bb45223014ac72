"""HTTP surface of the payment relay.

`POST /order` signs and forwards a pay-page request to the gateway and returns
its body; `POST /status` is the gateway's redirect/callback target and sends
the payer's browser to the frontend success or failure page.
"""

import json
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from time import perf_counter
from uuid import uuid4

import httpx
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from payrelay.common.config import RelaySettings
from payrelay.common.logging import configure_logging, logger, trace_id_ctx, transaction_id_ctx
from payrelay.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
    payment_orders_total,
    payment_status_checks_total,
)
from payrelay.common.security import security_headers
from payrelay.common.startup import log_startup_config
from payrelay.common.tracing import instrument_app, setup_tracing
from payrelay.services.relay.schemas import HealthResponse, OrderFailure, OrderRequest, ServerInfo
from payrelay.services.relay.service import GatewayError, RelayService

# Gateway merchant transaction ids: alphanumerics, underscore, hyphen, max 38.
TRANSACTION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,38}$")

router = APIRouter()


def get_settings(request: Request) -> RelaySettings:
    return request.app.state.settings


def get_service(request: Request) -> RelayService:
    return request.app.state.service


async def read_body(request: Request) -> dict:
    """Parse a JSON or form-encoded body into a dict; anything else is empty."""

    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return dict(form)
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def invalid_fields(exc: ValidationError) -> list[str]:
    fields = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
    return [name for name in OrderRequest.model_fields if name in fields]


def order_failure(settings: RelaySettings, exc: Exception) -> JSONResponse:
    """500 envelope; gateway detail only when the deployment allows it."""

    if settings.show_error_details:
        error = exc.detail if isinstance(exc, GatewayError) else str(exc)
    else:
        error = "Internal server error"
    failure = OrderFailure(message="Payment initiation failed", error=error)
    return JSONResponse(status_code=500, content=failure.model_dump())


@router.get("/health", response_model=HealthResponse)
def health():
    """Container health probe endpoint."""

    return HealthResponse()


@router.get("/test", response_model=ServerInfo)
def server_info(settings: RelaySettings = Depends(get_settings)):
    """Smoke-test endpoint reporting the running environment."""

    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return ServerInfo(environment=settings.environment, timestamp=timestamp)


@router.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@router.post("/order")
async def create_order(
    request: Request,
    settings: RelaySettings = Depends(get_settings),
    service: RelayService = Depends(get_service),
):
    """Validate an order, forward it to the gateway, return the gateway body.

    Invalid input is rejected with 400 before anything is sent upstream.
    """

    body = await read_body(request)
    logger.info("order request received fields=%s", sorted(body))
    try:
        order = OrderRequest.model_validate(body)
    except ValidationError as exc:
        fields = invalid_fields(exc)
        payment_orders_total.labels(service=settings.service_name, outcome="invalid").inc()
        logger.warning("order request rejected fields=%s", fields)
        failure = OrderFailure(message=f"Missing or invalid fields: {', '.join(fields)}")
        return JSONResponse(status_code=400, content=failure.model_dump(exclude_none=True))

    try:
        transaction_id, result = await service.create_order(order)
    except GatewayError as exc:
        payment_orders_total.labels(service=settings.service_name, outcome="failed").inc()
        logger.error("order initiation failed: %s detail=%s", exc, exc.detail)
        return order_failure(settings, exc)
    except Exception as exc:
        payment_orders_total.labels(service=settings.service_name, outcome="failed").inc()
        logger.exception("order initiation crashed: %s", exc)
        return order_failure(settings, exc)

    transaction_id_ctx.set(transaction_id)
    payment_orders_total.labels(service=settings.service_name, outcome="created").inc()
    return JSONResponse(content=result)


@router.post("/status")
async def check_status(
    request: Request,
    query_id: str | None = Query(default=None, alias="id"),
    settings: RelaySettings = Depends(get_settings),
    service: RelayService = Depends(get_service),
):
    """Look up the payment outcome and redirect the payer's browser.

    The transaction id comes from `?id=` (query redirect scheme) or from the
    `transactionId` field the gateway posts back (callback scheme).
    """

    body = await read_body(request)
    transaction_id = query_id or body.get("transactionId")
    transaction_id = str(transaction_id).strip() if transaction_id is not None else ""
    logger.info("status check requested transaction_id=%s code=%s", transaction_id, body.get("code"))

    failure = RedirectResponse(settings.frontend_failure_url, status_code=302)
    if not TRANSACTION_ID_RE.match(transaction_id):
        payment_status_checks_total.labels(service=settings.service_name, outcome="missing_id").inc()
        logger.warning("status check without usable transaction id")
        return failure

    transaction_id_ctx.set(transaction_id)
    try:
        paid = await service.check_status(transaction_id)
    except GatewayError as exc:
        payment_status_checks_total.labels(service=settings.service_name, outcome="error").inc()
        logger.error("status check failed: %s detail=%s", exc, exc.detail)
        return failure
    except Exception as exc:
        payment_status_checks_total.labels(service=settings.service_name, outcome="error").inc()
        logger.exception("status check crashed: %s", exc)
        return failure

    if paid:
        payment_status_checks_total.labels(service=settings.service_name, outcome="success").inc()
        return RedirectResponse(settings.frontend_success_url, status_code=302)
    payment_status_checks_total.labels(service=settings.service_name, outcome="failure").inc()
    return failure


def create_app(
    settings: RelaySettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the relay app around one settings object.

    `transport` replaces the network layer of the gateway client; tests use it
    to stand in for the gateway.
    """

    settings = settings or RelaySettings()
    configure_logging(settings.service_name, settings.log_level)
    setup_tracing(settings.service_name, settings.otel_exporter_otlp_endpoint)
    log_startup_config(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own one pooled gateway client for the app lifetime."""

        async with httpx.AsyncClient(timeout=settings.gateway_timeout_seconds, transport=transport) as client:
            app.state.service = RelayService(settings, client)
            yield

    app = FastAPI(title="Payment Gateway Relay", lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    instrument_app(app)
    extra_headers = security_headers(settings)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count/latency and attach trace + security headers."""

        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        trace_id = request.headers.get("x-correlation-id") or str(uuid4())
        trace_token = trace_id_ctx.set(trace_id)
        transaction_token = transaction_id_ctx.set("")
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            response.headers["x-correlation-id"] = trace_id
            for name, value in extra_headers.items():
                response.headers.setdefault(name, value)
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()
            trace_id_ctx.reset(trace_token)
            transaction_id_ctx.reset(transaction_token)

    app.include_router(router)
    return app


def run() -> None:
    """Console entrypoint: serve the relay on the configured host/port."""

    settings = RelaySettings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
