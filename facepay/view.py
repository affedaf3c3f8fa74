"""Pure projection of the two controllers into what the payment form shows."""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel

from .state import SubmissionPhase, VerificationStatus
from .submission import SubmissionController
from .verification import VerificationController

START_LABEL = "Start face verification"
RESTART_LABEL = "Restart face verification"
SUBMIT_LABEL = "Process payment"
PROCESSING_LABEL = "Processing..."


class VerificationView(BaseModel):
    status: VerificationStatus
    message: str
    tone: str
    # capture surface (preview + confirm/cancel) and call-to-action are mutually exclusive
    show_capture: bool
    cta_label: Optional[str]
    cta_enabled: bool
    verified: bool


class PaymentFormView(BaseModel):
    amount: str
    currency: Optional[str]
    amount_valid: bool
    phase: SubmissionPhase
    submit_label: str
    submit_enabled: bool
    blockers: List[str]
    result_message: Optional[str] = None
    result_data: Any = None


class WorkflowView(BaseModel):
    verification: VerificationView
    payment: PaymentFormView


def _tone(status: VerificationStatus) -> str:
    if status == VerificationStatus.ERROR:
        return "error"
    if status == VerificationStatus.VERIFIED:
        return "success"
    return "info"


def render_verification(controller: VerificationController) -> VerificationView:
    status = controller.status
    show_capture = controller.capture_active
    if show_capture:
        cta_label = None
    elif status == VerificationStatus.VERIFIED:
        cta_label = RESTART_LABEL
    else:
        cta_label = START_LABEL
    return VerificationView(
        status=status,
        message=controller.message,
        tone=_tone(status),
        show_capture=show_capture,
        cta_label=cta_label,
        cta_enabled=not show_capture and status != VerificationStatus.CAPTURING,
        verified=controller.token is not None,
    )


def render_payment(controller: SubmissionController) -> PaymentFormView:
    draft = controller.draft
    phase = controller.phase
    outcome = controller.outcome
    blockers = controller.blockers()
    settled = outcome is not None and phase in (SubmissionPhase.SUCCESS, SubmissionPhase.ERROR)
    return PaymentFormView(
        amount=draft.amount_text,
        currency=draft.currency.value if draft.currency else None,
        amount_valid=draft.amount_valid,
        phase=phase,
        submit_label=PROCESSING_LABEL if phase == SubmissionPhase.PROCESSING else SUBMIT_LABEL,
        submit_enabled=not blockers,
        blockers=blockers,
        result_message=outcome.message if settled else None,
        result_data=outcome.data if settled else None,
    )


def render(verification: VerificationController, submission: SubmissionController) -> WorkflowView:
    return WorkflowView(
        verification=render_verification(verification),
        payment=render_payment(submission),
    )


__all__ = ["WorkflowView", "VerificationView", "PaymentFormView", "render"]
