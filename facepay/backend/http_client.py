"""HTTP client for the payments REST endpoint."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import Settings
from ..errors import RemoteRejection, TransportFailure
from .models import PaymentRequest, PaymentResponse

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_MESSAGE = "The payment could not be processed."
_UNREADABLE = object()


class PaymentsHttpClient:
    """Thin wrapper around the payments API; one call, no retries."""

    def __init__(self, settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        self._client = httpx.AsyncClient(
            base_url=self.settings.payments_api_url,
            timeout=self.settings.payments_timeout_seconds,
            transport=transport,
        )

    async def create_payment(self, request: PaymentRequest) -> PaymentResponse:
        """Submit one payment. Raises TransportFailure or RemoteRejection."""
        body = request.model_dump(by_alias=True)
        try:
            logger.info("payments.create: %.2f %s for %s", request.amount, request.currency, request.user_id)
            response = await self._client.post("/payments", json=body)
        except httpx.TimeoutException as e:
            logger.error("payments.create: request timeout")
            raise TransportFailure("The payment service did not respond in time.", log_message=str(e)) from e
        except httpx.HTTPError as e:
            logger.error("payments.create: network error - %s", e)
            raise TransportFailure("The payment service is unreachable.", log_message=str(e)) from e

        try:
            payload = response.json()
        except ValueError:
            payload = _UNREADABLE

        if not response.is_success:
            message = DEFAULT_REJECTION_MESSAGE
            if isinstance(payload, dict) and payload.get("message"):
                message = str(payload["message"])
            logger.error("payments.create: HTTP %d - %s", response.status_code, message)
            raise RemoteRejection(response.status_code, message)

        # Any JSON 2xx means the processor took the payment; only a body that is not JSON is unusable
        if payload is _UNREADABLE:
            logger.error("payments.create: HTTP %d with non-JSON body", response.status_code)
            raise TransportFailure(
                "The payment service returned an unreadable response.",
                log_message=f"HTTP {response.status_code}: {response.text[:200]!r}",
            )
        accepted = PaymentResponse.from_body(payload)
        if not isinstance(payload, dict) or (accepted.data is None and payload.get("data") is not None):
            logger.warning("payments.create: HTTP %d with off-schema body %r", response.status_code, payload)
        return accepted

    async def aclose(self) -> None:
        try:
            await self._client.aclose()
        except Exception as e:
            logger.warning("Error closing HTTP client: %s", e)


__all__ = ["PaymentsHttpClient", "DEFAULT_REJECTION_MESSAGE"]
