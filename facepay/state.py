"""Shared state definitions for the verification and submission workflow."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict


class VerificationStatus(str, enum.Enum):
    """
    Verification states:

    IDLE      - No verification in progress, call-to-action shown
    CAPTURING - Camera requested (pending) or live preview shown
    VERIFIED  - Operator confirmed identity, token minted
    ERROR     - Camera unsupported or access denied
    """
    IDLE = "idle"
    CAPTURING = "capturing"
    VERIFIED = "verified"
    ERROR = "error"


class SubmissionPhase(str, enum.Enum):
    """
    Submission phases:

    IDLE       - Nothing submitted yet
    PROCESSING - Payment request in flight
    SUCCESS    - Processor accepted the payment (resumable)
    ERROR      - Transport failure or remote rejection (resumable)
    """
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class Currency(str, enum.Enum):
    USD = "USD"
    EUR = "EUR"
    MXN = "MXN"


@dataclass
class ControllerEvent:
    """Event payload distributed to UI clients over the local WebSocket."""

    type: str
    source: str
    data: Dict[str, Any]


__all__ = ["VerificationStatus", "SubmissionPhase", "Currency", "ControllerEvent"]
