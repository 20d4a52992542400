"""Cancellation fee resolution.

Converts the notice a customer gives before a reservation into a fee:

- Notice above every tier threshold: no rule applies, fee is 0
- Otherwise the tier with the largest threshold not above the notice applies
- Notice below every threshold (or a reservation already started): the
  lowest, strictest tier applies

The fee is floor(amount * fee_percentage / 100), always rounded down in
the customer's favour. Resolution is pure: no I/O, no hidden state.
"""

import datetime as dt
import math
from decimal import Decimal
from numbers import Real

from feepolicy.models import (
    CancellationPolicy,
    CancellationRule,
    ErrorCode,
    FeeQuote,
    PolicyError,
    validate_policy,
)

SECONDS_PER_HOUR = 3600

NO_FEE_RULE = CancellationRule(
    hours_before_reservation=0,
    fee_percentage=0,
    description="No cancellation fee: notice was given before every fee tier",
)


def _as_utc(value: dt.datetime) -> dt.datetime:
    """Treat naive datetimes as UTC so naive and aware inputs compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.UTC)
    return value


def notice_hours(reservation_time: dt.datetime, now: dt.datetime) -> float:
    """Hours between now and the reservation, clamped at 0."""
    delta = _as_utc(reservation_time) - _as_utc(now)
    return max(delta.total_seconds() / SECONDS_PER_HOUR, 0.0)


def select_rule(policy: CancellationPolicy, hours: float) -> CancellationRule | None:
    """Pick the tier for a given notice.

    Args:
        policy: Validated policy with rules in descending threshold order
        hours: Notice in hours (non-negative)

    Returns:
        The applicable rule, or None when the notice exceeds every threshold
    """
    if hours > policy.rules[0].hours_before_reservation:
        return None

    for rule in policy.rules:
        if hours >= rule.hours_before_reservation:
            return rule

    # Notice shorter than the smallest threshold
    return policy.rules[-1]


def calculate_fee(amount: int | float | Decimal, fee_percentage: int) -> int:
    """floor(amount * fee_percentage / 100) using exact decimal arithmetic."""
    return math.floor(Decimal(str(amount)) * fee_percentage / 100)


def resolve_fee(
    amount: int | float | Decimal,
    reservation_time: dt.datetime,
    policy: CancellationPolicy,
    now: dt.datetime | None = None,
) -> FeeQuote:
    """Calculate the cancellation fee for a reservation.

    Args:
        amount: Reservation amount in minor currency units
        reservation_time: Scheduled start of the reservation
        policy: Facility cancellation policy
        now: Cancellation time (defaults to the current UTC time)

    Returns:
        FeeQuote with the fee, the matched rule and the notice given

    Raises:
        ConfigurationError: If the policy is invalid
        PolicyError: If the amount is not a finite number
    """
    validate_policy(policy)
    if (
        isinstance(amount, bool)
        or not isinstance(amount, (Real, Decimal))
        or not math.isfinite(amount)
    ):
        raise PolicyError(ErrorCode.INVALID_AMOUNT, {"amount": str(amount)})

    current = now or dt.datetime.now(dt.UTC)
    hours = notice_hours(reservation_time, current)
    rule = select_rule(policy, hours)

    if rule is None:
        return FeeQuote(
            policy_id=policy.policy_id,
            policy_version=policy.version,
            fee=0,
            rule=NO_FEE_RULE,
            notice_hours=hours,
            matched=False,
        )

    return FeeQuote(
        policy_id=policy.policy_id,
        policy_version=policy.version,
        fee=calculate_fee(amount, rule.fee_percentage),
        rule=rule,
        notice_hours=hours,
        matched=True,
    )


def describe_policy(policy: CancellationPolicy) -> str:
    """Get a human-readable description of a policy.

    Returns:
        Multi-line policy description text
    """
    rules = policy.rules
    lines = [
        f"{policy.name}:",
        f"• More than {rules[0].hours_before_reservation} hours before the reservation: No fee",
    ]
    for index, rule in enumerate(rules):
        if rule.hours_before_reservation > 0:
            window = f"{rule.hours_before_reservation}+ hours before"
        elif index > 0:
            window = f"Less than {rules[index - 1].hours_before_reservation} hours before"
        else:
            window = "Up to the start"
        lines.append(f"• {window}: {rule.fee_percentage}% fee")
    for restriction in policy.restrictions:
        lines.append(f"• {restriction}")
    return "\n".join(lines)
