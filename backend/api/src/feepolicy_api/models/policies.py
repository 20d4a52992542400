"""API models for policy, fee quote and adjustment endpoints.

All amounts are in minor currency units (e.g. 10000 = 100.00).
"""

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from feepolicy.models import (
    CancellationPolicy,
    EvaluationPeriod,
    PolicyAdjustmentRecord,
    PolicyProposal,
)


class PolicyResponse(BaseModel):
    """Active policy of a facility with a readable summary."""

    policy: CancellationPolicy
    summary: str = Field(..., description="Multi-line description of the tiers")
    is_default: bool = Field(
        ...,
        description="True when the facility has no stored policy yet",
    )


class PolicyUpdateRequest(BaseModel):
    """Manual policy edit by an administrator."""

    policy: CancellationPolicy
    reason: str = Field(
        ...,
        min_length=1,
        description="Why the policy is being changed (stored in the ledger)",
        examples=["Align with the premium tier of the partner venue"],
    )
    expected_version: int = Field(
        ...,
        ge=0,
        description="Version of the policy the edit was based on",
        examples=[0],
    )


class FeeQuoteRequest(BaseModel):
    """Reservation to quote a cancellation fee for."""

    model_config = ConfigDict(
        allow_inf_nan=False,
        json_schema_extra={
            "examples": [
                {
                    "amount": 10000,
                    "reservation_time": "2025-07-15T18:00:00Z",
                    "cancelled_at": "2025-07-15T08:00:00Z",
                }
            ]
        },
    )

    amount: int | float = Field(
        ...,
        description="Reservation amount in minor currency units",
        examples=[10000],
    )
    reservation_time: dt.datetime = Field(..., description="Reservation start")
    cancelled_at: dt.datetime | None = Field(
        default=None,
        description="Cancellation time (defaults to now)",
    )


class FeeQuoteResponse(BaseModel):
    """Fee owed for cancelling the reservation."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "facility_id": "facility-1",
                    "policy_id": "default",
                    "policy_version": 0,
                    "fee": 10000,
                    "fee_percentage": 100,
                    "hours_before_reservation": 0,
                    "notice_hours": 10.0,
                    "matched": True,
                    "rule_description": "Full fee when cancelled within 12 hours of the reservation",
                }
            ]
        },
    )

    facility_id: str
    policy_id: str
    policy_version: int
    fee: int = Field(..., description="Fee in minor currency units")
    fee_percentage: int
    hours_before_reservation: int
    notice_hours: float
    matched: bool = Field(..., description="False when no tier applied")
    rule_description: str


class PolicyReviewRequest(BaseModel):
    """Cancellation records to review a facility's policy against.

    Records are accepted as raw objects; malformed ones are excluded from
    the statistics and counted rather than rejecting the request.
    """

    records: list[dict[str, Any]] = Field(default_factory=list)
    total_reservations: int | None = Field(
        default=None,
        ge=0,
        description="Reservations made in the window, for the cancellation rate",
    )
    strategy: str | None = Field(
        default=None,
        description="Strategy overriding the configured one",
        examples=["time_slot", "notice_window"],
    )
    period: EvaluationPeriod | None = Field(
        default=None,
        description="Look-back window applied to the records before aggregation",
    )


class PolicyCommitRequest(BaseModel):
    """Proposal returned by a review, approved for activation."""

    proposal: PolicyProposal


class PolicyCommitResponse(BaseModel):
    """Outcome of a commit."""

    committed: bool = Field(..., description="False when the proposal changed nothing")
    policy: CancellationPolicy = Field(..., description="Active policy after the commit")
    adjustment: PolicyAdjustmentRecord | None = None


class AdjustmentHistoryResponse(BaseModel):
    """Ledger entries, oldest first."""

    adjustments: list[PolicyAdjustmentRecord]
    count: int
