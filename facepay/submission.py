"""Payment draft validity and the single-attempt submission lifecycle."""
from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Union

from .backend.models import PaymentRequest, PaymentResponse
from .errors import InvalidTransition, RemoteRejection, TransportFailure
from .state import Currency, SubmissionPhase

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], Awaitable[None]]
TokenSource = Callable[[], Optional[str]]


class PaymentGateway(Protocol):
    async def create_payment(self, request: PaymentRequest) -> PaymentResponse: ...


def parse_amount(text: str) -> Optional[float]:
    """Parse raw amount input; None when it is not a number at all."""
    try:
        return float(text)
    except (TypeError, ValueError):
        return None


def is_amount_valid(text: str) -> bool:
    value = parse_amount(text)
    return value is not None and math.isfinite(value) and value > 0


def parse_currency(code: Union[str, Currency, None]) -> Optional[Currency]:
    """Empty selection clears the currency; unknown codes raise ValueError."""
    if code is None or code == "":
        return None
    return Currency(code)


@dataclass
class PaymentDraft:
    amount_text: str = ""
    currency: Optional[Currency] = Currency.USD

    @property
    def amount_value(self) -> Optional[float]:
        return parse_amount(self.amount_text)

    @property
    def amount_valid(self) -> bool:
        return is_amount_valid(self.amount_text)


@dataclass(frozen=True)
class SubmissionOutcome:
    """What the last attempt produced, surfaced for display and diagnostics."""

    phase: SubmissionPhase
    message: str
    data: Any = None
    error_kind: Optional[str] = None
    status_code: Optional[int] = None


class SubmissionController:
    """Derives submit enablement and runs one payment request per ``submit()``."""

    def __init__(
        self,
        gateway: PaymentGateway,
        *,
        token_source: TokenSource,
        user_id: str,
        default_currency: Optional[Currency] = Currency.USD,
    ) -> None:
        self._gateway = gateway
        self._token_source = token_source
        self._user_id = user_id
        self._draft = PaymentDraft(currency=default_currency)
        self._phase = SubmissionPhase.IDLE
        self._outcome: Optional[SubmissionOutcome] = None
        self._callbacks: list[ChangeCallback] = []

    @property
    def draft(self) -> PaymentDraft:
        return self._draft

    @property
    def phase(self) -> SubmissionPhase:
        return self._phase

    @property
    def outcome(self) -> Optional[SubmissionOutcome]:
        return self._outcome

    def register_callback(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    async def update_amount(self, text: str) -> None:
        self._draft.amount_text = text
        await self._emit()

    async def update_currency(self, code: Union[str, Currency, None]) -> None:
        self._draft.currency = parse_currency(code)
        await self._emit()

    def blockers(self) -> List[str]:
        """Unmet enablement conditions; submission is allowed when empty."""
        reasons = []
        if not self._draft.amount_valid:
            reasons.append("amount")
        if self._draft.currency is None:
            reasons.append("currency")
        if self._token_source() is None:
            reasons.append("verification")
        if self._phase == SubmissionPhase.PROCESSING:
            reasons.append("in_flight")
        return reasons

    @property
    def can_submit(self) -> bool:
        return not self.blockers()

    async def submit(self) -> SubmissionPhase:
        blockers = self.blockers()
        if blockers:
            raise InvalidTransition(
                "Payment cannot be submitted yet.",
                log_message=f"submit while blocked by {', '.join(blockers)}",
            )

        token = self._token_source()
        request = PaymentRequest(
            amount=self._draft.amount_value,
            currency=self._draft.currency.value,
            user_id=self._user_id,
            face_auth_token=token,
        )
        await self._advance(SubmissionPhase.PROCESSING)

        try:
            response = await self._gateway.create_payment(request)
        except asyncio.CancelledError:
            logger.warning("Payment submission cancelled while in flight")
            await self._advance(
                SubmissionPhase.ERROR,
                SubmissionOutcome(SubmissionPhase.ERROR, "Payment was interrupted.", error_kind="cancelled"),
            )
            raise
        except TransportFailure as exc:
            logger.error("Payment transport failure: %s", exc)
            await self._advance(
                SubmissionPhase.ERROR,
                SubmissionOutcome(SubmissionPhase.ERROR, exc.user_message, error_kind="transport"),
            )
            return self._phase
        except RemoteRejection as exc:
            logger.error("Payment rejected (HTTP %d): %s", exc.status_code, exc.remote_message)
            await self._advance(
                SubmissionPhase.ERROR,
                SubmissionOutcome(
                    SubmissionPhase.ERROR,
                    exc.remote_message,
                    error_kind="rejected",
                    status_code=exc.status_code,
                ),
            )
            return self._phase
        except Exception as exc:
            logger.exception("Unexpected payment error: %s", exc)
            await self._advance(
                SubmissionPhase.ERROR,
                SubmissionOutcome(SubmissionPhase.ERROR, "Please try again.", error_kind="unexpected"),
            )
            return self._phase

        raw = response.raw
        data = raw.get("data") if isinstance(raw, dict) else raw
        if data is None and response.data is not None:
            data = response.data.model_dump(by_alias=True, exclude_none=True)
        logger.info("Payment accepted: %s %s", response.message, data)
        await self._advance(
            SubmissionPhase.SUCCESS,
            SubmissionOutcome(SubmissionPhase.SUCCESS, response.message, data=data),
        )
        return self._phase

    async def _advance(self, phase: SubmissionPhase, outcome: Optional[SubmissionOutcome] = None) -> None:
        logger.debug("Submission phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase
        if outcome is not None:
            self._outcome = outcome
        await self._emit()

    async def _emit(self) -> None:
        for callback in self._callbacks:
            try:
                await callback()
            except Exception:
                logger.exception("Submission change callback failed")


__all__ = [
    "PaymentDraft",
    "PaymentGateway",
    "SubmissionController",
    "SubmissionOutcome",
    "is_amount_valid",
    "parse_amount",
    "parse_currency",
]
