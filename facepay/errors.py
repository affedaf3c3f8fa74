"""Error taxonomy for the verification-gated payment flow."""
from __future__ import annotations

from typing import Optional


class PaymentFlowError(RuntimeError):
    """Base for recoverable flow failures; ``user_message`` is the advisory text."""

    def __init__(self, user_message: str, *, log_message: Optional[str] = None) -> None:
        super().__init__(log_message or user_message)
        self.user_message = user_message


class CapabilityUnavailable(PaymentFlowError):
    """No camera access API on this host."""


class AcquisitionDenied(PaymentFlowError):
    """Camera exists but could not be opened (permission, busy, unplugged)."""


class TransportFailure(PaymentFlowError):
    """The payment request produced no usable response."""


class RemoteRejection(PaymentFlowError):
    """The processor answered with a non-success status."""

    def __init__(self, status_code: int, remote_message: str) -> None:
        super().__init__(remote_message, log_message=f"HTTP {status_code}: {remote_message}")
        self.status_code = status_code
        self.remote_message = remote_message


class InvalidTransition(PaymentFlowError):
    """An intent was issued from a state that does not allow it."""


__all__ = [
    "PaymentFlowError",
    "CapabilityUnavailable",
    "AcquisitionDenied",
    "TransportFailure",
    "RemoteRejection",
    "InvalidTransition",
]
