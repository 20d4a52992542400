"""Cancellation history records and the statistics derived from them."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import CancellationStatus


class CancellationRecord(BaseModel):
    """A cancelled reservation, owned by the reservation subsystem.

    Amounts are in minor currency units. Non-finite or negative amounts
    fail validation so the aggregator can exclude them.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    record_id: str = Field(..., description="Unique cancellation record ID")
    facility_id: str = Field(..., description="Facility of the cancelled reservation")
    user_id: str = Field(..., description="Customer who cancelled")
    reservation_amount: int | float = Field(
        ..., ge=0, description="Original reservation amount"
    )
    cancellation_fee: int | float = Field(
        ..., ge=0, description="Cancellation fee charged"
    )
    cancelled_at: datetime = Field(..., description="Cancellation timestamp")
    reason: str = Field(default="", description="Free-text cancellation reason")
    status: CancellationStatus = Field(
        default=CancellationStatus.PENDING, description="Fee settlement status"
    )


class CancellationStats(BaseModel):
    """Aggregated metrics over one evaluation window.

    Recomputed for every evaluation and never persisted on its own.
    """

    total_cancellations: int = Field(default=0, ge=0)
    cancellations_by_time_slot: dict[str, int] = Field(
        default_factory=dict,
        description='Hour-of-day slot ("H:00-H+1:00") to cancellation count',
    )
    average_fee: float = Field(default=0.0, description="Mean cancellation fee")
    revenue_loss: int | float = Field(
        default=0, description="Sum of refunded portions (amount - fee)"
    )
    total_fees: int | float = Field(default=0, description="Sum of fees charged")
    total_reservation_amount: int | float = Field(
        default=0, description="Sum of cancelled reservation amounts"
    )
    excluded_records: int = Field(
        default=0,
        ge=0,
        description="Records skipped as malformed or belonging to another facility",
    )
    total_reservations: int | None = Field(
        default=None,
        description="Reservations made in the window, when known",
    )
    cancellation_rate: float | None = Field(
        default=None,
        description="Cancellations per reservation in percent, when known",
    )
    revenue_impact: float = Field(
        default=0.0,
        description="Refunded share of the cancelled reservation value in percent",
    )
