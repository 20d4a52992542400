"""Cancellation statistics aggregation.

Reduces a window of cancellation records into the metrics the adjustment
strategies evaluate. Callers pass records already restricted to the
evaluation period; filter_window() selects the standard week/month/quarter
windows for callers that do not own that policy themselves.

Malformed records (non-finite or negative amounts, unparseable timestamps,
missing fields) never abort an aggregation: they are skipped and counted
in CancellationStats.excluded_records.
"""

import datetime as dt
import math
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from feepolicy.models import (
    DEFAULT_POLICY_ID,
    CancellationPolicy,
    CancellationRecord,
    CancellationStats,
    EvaluationPeriod,
)
from feepolicy.utils.logging import get_logger

logger = get_logger(__name__)

PERIOD_DAYS: dict[EvaluationPeriod, int] = {
    EvaluationPeriod.WEEK: 7,
    EvaluationPeriod.MONTH: 30,
    EvaluationPeriod.QUARTER: 90,
}


def time_slot(hour: int) -> str:
    """Label of the one-hour slot starting at the given hour."""
    return f"{hour}:00-{hour + 1}:00"


def _is_finite_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


def _coerce_record(
    record: CancellationRecord | Mapping[str, Any],
) -> CancellationRecord | None:
    """Validate one input record, returning None when it is malformed."""
    if isinstance(record, CancellationRecord):
        # Instances built with model_construct() skip validation
        if (
            _is_finite_number(record.reservation_amount)
            and _is_finite_number(record.cancellation_fee)
            and isinstance(record.cancelled_at, dt.datetime)
        ):
            return record
        return None
    try:
        return CancellationRecord.model_validate(record)
    except ValidationError:
        return None


def filter_window(
    records: Iterable[CancellationRecord | Mapping[str, Any]],
    period: EvaluationPeriod | str = EvaluationPeriod.MONTH,
    now: dt.datetime | None = None,
) -> list[CancellationRecord | Mapping[str, Any]]:
    """Select records cancelled within the look-back window ending at now.

    Records that fail validation are passed through unchanged so that
    aggregate() still counts them as excluded.

    Args:
        records: Cancellation records (models or raw mappings)
        period: week (7 days), month (30 days) or quarter (90 days)
        now: End of the window (defaults to the current UTC time)

    Returns:
        Records with now - period <= cancelled_at <= now, in input order
    """
    days = PERIOD_DAYS[EvaluationPeriod(period)]
    end = now or dt.datetime.now(dt.UTC)
    if end.tzinfo is None:
        end = end.replace(tzinfo=dt.UTC)
    start = end - dt.timedelta(days=days)

    selected: list[CancellationRecord | Mapping[str, Any]] = []
    for raw in records:
        record = _coerce_record(raw)
        if record is None:
            selected.append(raw)
            continue
        cancelled_at = record.cancelled_at
        if cancelled_at.tzinfo is None:
            cancelled_at = cancelled_at.replace(tzinfo=dt.UTC)
        if start <= cancelled_at <= end:
            selected.append(record)
    return selected


def aggregate(
    records: Iterable[CancellationRecord | Mapping[str, Any]],
    policy: CancellationPolicy,
    total_reservations: int | None = None,
) -> CancellationStats:
    """Aggregate a window of cancellation records.

    Args:
        records: Records (models or raw mappings) for the evaluation window
        policy: Policy under evaluation; records of other facilities are
            excluded unless this is the shared default policy
        total_reservations: Reservations made in the window, used for the
            cancellation rate when known

    Returns:
        CancellationStats for the window
    """
    restrict_facility = policy.facility_id != DEFAULT_POLICY_ID

    count = 0
    excluded = 0
    total_fees: int | float = 0
    total_amount: int | float = 0
    revenue_loss: int | float = 0
    by_hour: dict[int, int] = {}

    for raw in records:
        record = _coerce_record(raw)
        if record is None:
            excluded += 1
            continue
        if restrict_facility and record.facility_id != policy.facility_id:
            excluded += 1
            continue

        count += 1
        hour = record.cancelled_at.hour
        by_hour[hour] = by_hour.get(hour, 0) + 1
        total_fees += record.cancellation_fee
        total_amount += record.reservation_amount
        revenue_loss += record.reservation_amount - record.cancellation_fee

    if excluded:
        logger.warning(
            "Excluded %d cancellation records from aggregation for facility %s",
            excluded,
            policy.facility_id,
        )

    cancellation_rate: float | None = None
    if total_reservations is not None and total_reservations > 0:
        cancellation_rate = count / total_reservations * 100

    return CancellationStats(
        total_cancellations=count,
        cancellations_by_time_slot={time_slot(h): by_hour[h] for h in sorted(by_hour)},
        average_fee=total_fees / count if count else 0.0,
        revenue_loss=revenue_loss,
        total_fees=total_fees,
        total_reservation_amount=total_amount,
        excluded_records=excluded,
        total_reservations=total_reservations,
        cancellation_rate=cancellation_rate,
        revenue_impact=revenue_loss / total_amount * 100 if total_amount else 0.0,
    )
