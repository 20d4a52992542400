"""Fee quotes, adjustment proposals and ledger entries."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import AdjustmentSource
from .policy import CancellationPolicy, CancellationRule
from .records import CancellationStats


class FeeQuote(BaseModel):
    """Fee owed for cancelling a reservation now."""

    model_config = ConfigDict(frozen=True)

    policy_id: str = Field(..., description="Policy the fee was resolved against")
    policy_version: int = Field(..., ge=0, description="Version of that policy")
    fee: int = Field(..., description="Fee in minor currency units, rounded down")
    rule: CancellationRule = Field(..., description="Tier that produced the fee")
    notice_hours: float = Field(..., ge=0, description="Notice given, clamped at 0")
    matched: bool = Field(
        ...,
        description="False when the notice exceeded every tier and no rule applied",
    )


class PolicyProposal(BaseModel):
    """Advisory output of an adjustment strategy.

    Nothing is persisted until the proposal is committed.
    """

    model_config = ConfigDict(frozen=True)

    changed: bool
    proposed_policy: CancellationPolicy
    reasons: list[str] = Field(default_factory=list)
    strategy: str = Field(..., description="Name of the strategy that produced it")
    base_version: int = Field(
        ...,
        ge=0,
        description="Version of the policy the proposal was computed from",
    )


class PolicyAdjustmentRecord(BaseModel):
    """Immutable ledger entry describing one policy transition."""

    model_config = ConfigDict(frozen=True)

    adjustment_id: str = Field(..., description="Unique adjustment ID")
    facility_id: str
    old_policy: CancellationPolicy
    new_policy: CancellationPolicy
    reason: str = Field(..., description="Newline-joined triggered clauses")
    source: AdjustmentSource = AdjustmentSource.AUTOMATIC
    strategy: str | None = None
    timestamp: datetime


class PolicyReview(BaseModel):
    """Statistics, proposal and advice produced by one review pass."""

    facility_id: str
    stats: CancellationStats
    proposal: PolicyProposal
    recommendations: list[str] = Field(default_factory=list)
