"""Wire models for the payments REST endpoint."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class PaymentRequest(BaseModel):
    """Body of ``POST /payments``."""

    model_config = ConfigDict(populate_by_name=True)

    amount: float
    currency: str
    user_id: str = Field(..., alias="userId")
    face_auth_token: str = Field(..., alias="faceAuthToken")


class PaymentData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    intent_id: Optional[str] = Field(None, alias="intentId")
    status: Optional[str] = None
    approval_url: Optional[str] = Field(None, alias="approvalUrl")


class PaymentResponse(BaseModel):
    """Accepted payment; ``raw`` keeps the body exactly as the processor sent it."""

    message: str = ""
    data: Optional[PaymentData] = None
    raw: Any = Field(None, exclude=True)

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @classmethod
    def from_body(cls, body: Any) -> "PaymentResponse":
        """Lenient view of a 2xx body; any JSON value is an accepted payment."""
        fields = body if isinstance(body, dict) else {}
        data = None
        if isinstance(fields.get("data"), dict):
            try:
                data = PaymentData.model_validate(fields["data"])
            except ValidationError:
                data = None
        return cls(message=fields.get("message"), data=data, raw=body)


__all__ = ["PaymentRequest", "PaymentData", "PaymentResponse"]
