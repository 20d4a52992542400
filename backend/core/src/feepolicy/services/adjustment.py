"""Adaptive policy adjustment.

Strategies turn aggregated cancellation statistics into a proposed policy.
Proposals are advisory: nothing is persisted until PolicyService.commit()
writes the ledger entry and activates the new policy.

Strategies:
- time_slot: raises the 24-hour tier for hot cancellation slots, raises
  every tier when fees recover too little of the refunded value, and
  lowers every tier when there is too little data to justify increases
- notice_window: when the cancellation rate or revenue impact exceeds its
  threshold, raises the top tier's fee, extends its notice window and adds
  restriction texts

Every fee stays within [0, 100]. A clause that cannot change anything
(the fee is already at the bound) is not reported, so a proposal is
changed exactly when it carries at least one reason.
"""

import math
from typing import Protocol, runtime_checkable

from feepolicy.config import AdjustmentSettings, EngineSettings, NoticeWindowSettings
from feepolicy.models import (
    CancellationPolicy,
    CancellationStats,
    ConfigurationError,
    ErrorCode,
    PolicyProposal,
    validate_policy,
)
from feepolicy.models.policy import MAX_FEE_PERCENTAGE, MIN_FEE_PERCENTAGE
from feepolicy.utils.logging import get_logger

logger = get_logger(__name__)

HOURS_PER_DAY = 24


@runtime_checkable
class AdjustmentStrategy(Protocol):
    """Interface shared by every policy-tuning strategy."""

    name: str

    def propose(
        self, policy: CancellationPolicy, stats: CancellationStats
    ) -> PolicyProposal:
        """Return a proposal derived from the policy; never mutate it."""
        ...


def _clamp(value: int) -> int:
    return max(MIN_FEE_PERCENTAGE, min(value, MAX_FEE_PERCENTAGE))


def _with_fees(policy: CancellationPolicy, fees: list[int]) -> CancellationPolicy:
    rules = [
        rule.model_copy(update={"fee_percentage": fee})
        for rule, fee in zip(policy.rules, fees)
    ]
    return policy.model_copy(update={"rules": rules}, deep=True)


def _proposal(
    strategy: str,
    policy: CancellationPolicy,
    proposed: CancellationPolicy | None,
    reasons: list[str],
) -> PolicyProposal:
    if not reasons or proposed is None:
        proposed = policy.model_copy(deep=True)
    return PolicyProposal(
        changed=bool(reasons),
        proposed_policy=proposed,
        reasons=reasons,
        strategy=strategy,
        base_version=policy.version,
    )


class TimeSlotFeeStrategy:
    """Facility-level fee tuning driven by cancellation time slots and yield."""

    name = "time_slot"

    def __init__(self, settings: AdjustmentSettings | None = None) -> None:
        self.settings = settings or AdjustmentSettings()

    def propose(
        self, policy: CancellationPolicy, stats: CancellationStats
    ) -> PolicyProposal:
        validate_policy(policy)
        s = self.settings
        fees = [rule.fee_percentage for rule in policy.rules]
        reasons: list[str] = []

        if stats.total_cancellations < s.sparse_data_min:
            # Too little data: no increases, relax every tier instead
            lowered = [_clamp(fee - s.sparse_data_fee_step) for fee in fees]
            if lowered != fees:
                fees = lowered
                reasons.append(
                    f"Only {stats.total_cancellations} cancellations recorded "
                    f"(fewer than {s.sparse_data_min}); lowered every tier fee "
                    f"by {s.sparse_data_fee_step} points"
                )
            return _proposal(self.name, policy, _with_fees(policy, fees), reasons)

        hot_index = next(
            (
                i
                for i, rule in enumerate(policy.rules)
                if rule.hours_before_reservation == s.hot_slot_threshold_hours
            ),
            None,
        )
        for slot, count in stats.cancellations_by_time_slot.items():
            share = count / stats.total_cancellations
            if share <= s.hot_slot_share:
                continue
            if hot_index is None:
                logger.debug(
                    "Hot slot %s ignored: policy %s has no %d-hour tier",
                    slot,
                    policy.policy_id,
                    s.hot_slot_threshold_hours,
                )
                continue
            raised = _clamp(fees[hot_index] + s.hot_slot_fee_step)
            if raised != fees[hot_index]:
                fees[hot_index] = raised
                reasons.append(
                    f"{share:.1%} of cancellations fall in {slot}; raised the "
                    f"{s.hot_slot_threshold_hours}-hour tier fee to {raised}%"
                )

        if stats.average_fee < stats.revenue_loss * s.low_yield_ratio:
            raised_all = [_clamp(fee + s.low_yield_fee_step) for fee in fees]
            if raised_all != fees:
                fees = raised_all
                reasons.append(
                    f"Average fee {stats.average_fee:.0f} is below "
                    f"{s.low_yield_ratio:.0%} of revenue loss {stats.revenue_loss:.0f}; "
                    f"raised every tier fee by {s.low_yield_fee_step} points"
                )

        return _proposal(self.name, policy, _with_fees(policy, fees), reasons)


class NoticeWindowStrategy:
    """Facility-agnostic tuning of the top tier's fee, notice and restrictions."""

    name = "notice_window"

    def __init__(self, settings: NoticeWindowSettings | None = None) -> None:
        self.settings = settings or NoticeWindowSettings()

    def propose(
        self, policy: CancellationPolicy, stats: CancellationStats
    ) -> PolicyProposal:
        validate_policy(policy)
        s = self.settings
        if not s.enabled:
            logger.info("Notice-window adjustment is disabled")
            return _proposal(self.name, policy, None, [])

        rate = stats.cancellation_rate or 0.0
        impact = stats.revenue_impact
        triggers: list[str] = []
        if rate > s.cancellation_rate_threshold:
            triggers.append(
                f"cancellation rate {rate:.1f}% exceeds {s.cancellation_rate_threshold:g}%"
            )
        if impact > s.revenue_impact_threshold:
            triggers.append(
                f"revenue impact {impact:.1f}% exceeds {s.revenue_impact_threshold:g}%"
            )
        if not triggers:
            return _proposal(self.name, policy, None, [])

        cause = "; ".join(triggers).capitalize()
        top = policy.rules[0]
        fee = top.fee_percentage
        hours = top.hours_before_reservation
        restrictions = list(policy.restrictions)
        reasons: list[str] = []

        if s.increase_fee:
            raised = _clamp(fee + min(math.ceil(rate / 10), s.max_fee_increase))
            if raised != fee:
                reasons.append(
                    f"{cause}: raised the {hours}-hour tier fee from {fee}% to {raised}%"
                )
                fee = raised

        if s.extend_notice_period:
            days = min(math.ceil(rate / 5), s.max_notice_extension_days)
            if days > 0:
                extended = hours + days * HOURS_PER_DAY
                reasons.append(
                    f"{cause}: extended the top tier notice from {hours} to {extended} hours"
                )
                hours = extended

        if s.add_restrictions:
            added = [r for r in s.restrictions if r not in restrictions]
            if added:
                restrictions.extend(added)
                reasons.append(f"{cause}: added restrictions: {'; '.join(added)}")

        new_top = top.model_copy(
            update={"fee_percentage": fee, "hours_before_reservation": hours}
        )
        proposed = policy.model_copy(
            update={"rules": [new_top, *policy.rules[1:]], "restrictions": restrictions},
            deep=True,
        )
        return _proposal(self.name, policy, proposed, reasons)


STRATEGY_NAMES = (TimeSlotFeeStrategy.name, NoticeWindowStrategy.name)


def get_strategy(
    name: str, settings: EngineSettings | None = None
) -> AdjustmentStrategy:
    """Build a registered strategy by name.

    Raises:
        ConfigurationError: If the name is not a registered strategy
    """
    settings = settings or EngineSettings()
    if name == TimeSlotFeeStrategy.name:
        return TimeSlotFeeStrategy(settings.adjustment)
    if name == NoticeWindowStrategy.name:
        return NoticeWindowStrategy(settings.notice_window)
    raise ConfigurationError({"strategy": name}, code=ErrorCode.UNKNOWN_STRATEGY)


def adjust(
    current_policy: CancellationPolicy,
    stats: CancellationStats,
    strategy: AdjustmentStrategy | None = None,
) -> PolicyProposal:
    """Propose an adjusted policy (time_slot strategy unless one is given)."""
    return (strategy or TimeSlotFeeStrategy()).propose(current_policy, stats)


def recommend(
    stats: CancellationStats, settings: AdjustmentSettings | None = None
) -> list[str]:
    """Advisory texts for an administrator reviewing the statistics.

    Unlike adjust(), recommendations never change a policy and every check
    is reported independently.
    """
    s = settings or AdjustmentSettings()
    recommendations: list[str] = []

    if stats.total_cancellations:
        for slot, count in stats.cancellations_by_time_slot.items():
            share = count / stats.total_cancellations
            if share > s.hot_slot_share:
                recommendations.append(
                    f"{share:.1%} of cancellations fall in {slot}; consider raising "
                    f"fees for reservations cancelled in this time slot"
                )

    if stats.revenue_loss > stats.average_fee * 2:
        recommendations.append(
            "Revenue loss exceeds twice the average fee; consider reviewing fee "
            "levels across all tiers"
        )

    if stats.total_cancellations < s.sparse_data_min:
        recommendations.append(
            f"Fewer than {s.sparse_data_min} cancellations recorded; collect data "
            f"over a longer period before judging the current policy"
        )

    return recommendations
