"""Enumeration types for cancellation policy data models."""

from enum import Enum


class CancellationStatus(str, Enum):
    """Settlement status of a cancellation fee."""

    PENDING = "pending"
    PAID = "paid"
    WAIVED = "waived"


class AdjustmentSource(str, Enum):
    """Origin of a policy change recorded in the ledger."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"


class EvaluationPeriod(str, Enum):
    """Look-back windows for selecting cancellation records."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


class ExportFormat(str, Enum):
    """Supported interchange formats."""

    JSON = "json"
    CSV = "csv"
