"""Payments backend client."""
from .http_client import PaymentsHttpClient
from .models import PaymentData, PaymentRequest, PaymentResponse

__all__ = ["PaymentsHttpClient", "PaymentData", "PaymentRequest", "PaymentResponse"]
