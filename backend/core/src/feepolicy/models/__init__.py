"""Pydantic models for cancellation policies, records and adjustments."""

from .adjustment import FeeQuote, PolicyAdjustmentRecord, PolicyProposal, PolicyReview
from .enums import AdjustmentSource, CancellationStatus, EvaluationPeriod, ExportFormat
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ConfigurationError,
    ConflictError,
    ErrorCode,
    ErrorResponse,
    PolicyError,
)
from .policy import (
    DEFAULT_POLICY_ID,
    POLICY_TEMPLATES,
    CancellationPolicy,
    CancellationRule,
    default_policy,
    load_policy,
    policy_from_template,
    validate_policy,
)
from .records import CancellationRecord, CancellationStats

__all__ = [
    # Enums
    "AdjustmentSource",
    "CancellationStatus",
    "EvaluationPeriod",
    "ExportFormat",
    # Policy
    "CancellationPolicy",
    "CancellationRule",
    "DEFAULT_POLICY_ID",
    "POLICY_TEMPLATES",
    "default_policy",
    "load_policy",
    "policy_from_template",
    "validate_policy",
    # Records
    "CancellationRecord",
    "CancellationStats",
    # Adjustment
    "FeeQuote",
    "PolicyAdjustmentRecord",
    "PolicyProposal",
    "PolicyReview",
    # Errors
    "ConfigurationError",
    "ConflictError",
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "PolicyError",
]
