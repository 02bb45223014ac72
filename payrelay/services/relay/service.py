"""Gateway calls for order creation and status lookup."""

from time import perf_counter
from typing import Any
from uuid import uuid4

import httpx

from payrelay.common.checksum import (
    PAY_PATH,
    encode_payload,
    pay_checksum,
    status_checksum,
    status_path,
)
from payrelay.common.config import RedirectScheme, RelaySettings
from payrelay.common.logging import logger
from payrelay.common.metrics import gateway_request_duration_seconds
from payrelay.services.relay.schemas import OrderRequest


class GatewayError(Exception):
    """A gateway call failed: transport error, HTTP error, or reported failure.

    `detail` carries whatever the gateway sent back (parsed JSON when possible)
    so the HTTP layer can decide whether to expose it.
    """

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.detail = detail if detail is not None else message


def new_transaction_id() -> str:
    """Merchant transaction id: `MT` + 32 hex chars from uuid4."""

    return f"MT{uuid4().hex}"


def _redirect_target(body: dict[str, Any]) -> str | None:
    try:
        return body["data"]["instrumentResponse"]["redirectInfo"]["url"]
    except (KeyError, TypeError):
        return None


class RelayService:
    """Signs and forwards order/status requests to the payment gateway."""

    def __init__(self, settings: RelaySettings, http_client: httpx.AsyncClient) -> None:
        self.settings = settings
        self.http_client = http_client

    def redirect_url(self, transaction_id: str) -> str:
        """Where the gateway sends the payer back after the pay page."""

        status_url = f"{self.settings.base_url.rstrip('/')}/status"
        if self.settings.redirect_scheme is RedirectScheme.QUERY:
            return str(httpx.URL(status_url, params={"id": transaction_id}))
        return status_url

    def build_payload(self, order: OrderRequest, transaction_id: str) -> dict[str, Any]:
        redirect_url = self.redirect_url(transaction_id)
        payload: dict[str, Any] = {
            "merchantId": self.settings.phonepe_merchant_id,
            "merchantTransactionId": transaction_id,
            "name": order.name,
            "amount": order.amount_minor,
            "redirectUrl": redirect_url,
            "redirectMode": self.settings.phonepe_redirect_mode,
            "mobileNumber": order.number,
            "paymentInstrument": {"type": "PAY_PAGE"},
        }
        if self.settings.redirect_scheme is RedirectScheme.CALLBACK:
            payload["callbackUrl"] = redirect_url
        return payload

    async def _send(
        self,
        endpoint: str,
        method: str,
        path: str,
        headers: dict[str, str],
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.settings.gateway_base_url}{path}"
        start = perf_counter()
        try:
            resp = await self.http_client.request(method, url, headers=headers, json=json)
        except httpx.HTTPError as exc:
            reason = str(exc) or type(exc).__name__
            raise GatewayError(f"gateway unreachable: {reason}") from exc
        finally:
            gateway_request_duration_seconds.labels(
                service=self.settings.service_name,
                endpoint=endpoint,
            ).observe(max(0.0, perf_counter() - start))

        try:
            body = resp.json()
        except ValueError as exc:
            raise GatewayError(
                f"gateway returned non-JSON response status={resp.status_code}",
                detail=resp.text,
            ) from exc
        if resp.status_code >= 400:
            raise GatewayError(f"gateway rejected request status={resp.status_code}", detail=body)
        if not isinstance(body, dict):
            raise GatewayError("gateway returned unexpected response shape", detail=body)
        return body

    async def create_order(self, order: OrderRequest) -> tuple[str, dict[str, Any]]:
        """Start a pay-page payment; return the transaction id and gateway body."""

        transaction_id = new_transaction_id()
        payload = self.build_payload(order, transaction_id)
        logger.info(
            "payment request built transaction_id=%s amount=%s redirect_url=%s",
            transaction_id,
            payload["amount"],
            payload["redirectUrl"],
        )
        encoded = encode_payload(payload)
        checksum = pay_checksum(encoded, self.settings.phonepe_salt_key, self.settings.phonepe_key_index)
        body = await self._send(
            "pay",
            "POST",
            PAY_PATH,
            headers={
                "accept": "application/json",
                "Content-Type": "application/json",
                "X-VERIFY": checksum,
            },
            json={"request": encoded},
        )
        if body.get("success") is False:
            raise GatewayError(f"gateway reported failure code={body.get('code')}", detail=body)
        logger.info(
            "payment initiated transaction_id=%s code=%s pay_page=%s",
            transaction_id,
            body.get("code"),
            _redirect_target(body),
        )
        return transaction_id, body

    async def check_status(self, transaction_id: str) -> bool:
        """Return True only when the gateway reports the payment as successful."""

        merchant_id = self.settings.phonepe_merchant_id
        checksum = status_checksum(
            merchant_id,
            transaction_id,
            self.settings.phonepe_salt_key,
            self.settings.phonepe_key_index,
        )
        body = await self._send(
            "status",
            "GET",
            status_path(merchant_id, transaction_id),
            headers={
                "accept": "application/json",
                "Content-Type": "application/json",
                "X-VERIFY": checksum,
                "X-MERCHANT-ID": merchant_id,
            },
        )
        logger.info(
            "status response transaction_id=%s success=%s code=%s",
            transaction_id,
            body.get("success"),
            body.get("code"),
        )
        return body.get("success") is True
