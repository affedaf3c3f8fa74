"""Face-verified payment controller."""
from .errors import (
    AcquisitionDenied,
    CapabilityUnavailable,
    InvalidTransition,
    PaymentFlowError,
    RemoteRejection,
    TransportFailure,
)
from .state import Currency, SubmissionPhase, VerificationStatus

__version__ = "0.1.0"

__all__ = [
    "AcquisitionDenied",
    "CapabilityUnavailable",
    "Currency",
    "InvalidTransition",
    "PaymentFlowError",
    "RemoteRejection",
    "SubmissionPhase",
    "TransportFailure",
    "VerificationStatus",
    "__version__",
]
