"""JSON and CSV import/export of policies and cancellation records.

Rule order and integer fields survive every round trip. Malformed input
raises PolicyError(IMPORT_FAILED) with the offending row or field in the
details.
"""

import csv
import io
import json
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from feepolicy.models import (
    CancellationPolicy,
    CancellationRecord,
    ErrorCode,
    PolicyError,
)

POLICY_CSV_FIELDS = [
    "facility_id",
    "policy_id",
    "name",
    "description",
    "version",
    "restrictions",
    "created_at",
    "updated_at",
    "rule_index",
    "hours_before_reservation",
    "fee_percentage",
    "rule_description",
]

RECORD_CSV_FIELDS = [
    "record_id",
    "facility_id",
    "user_id",
    "reservation_amount",
    "cancellation_fee",
    "cancelled_at",
    "reason",
    "status",
]

def _import_error(reason: str, row: int | None = None, field: str | None = None) -> PolicyError:
    details = {"reason": reason}
    if row is not None:
        details["row"] = str(row)
    if field:
        details["field"] = field
    return PolicyError(ErrorCode.IMPORT_FAILED, details)


def _validation_error(e: ValidationError, row: int | None = None) -> PolicyError:
    first = e.errors()[0] if e.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    return _import_error(first.get("msg", str(e)), row=row, field=location or None)


def _parse_restrictions(value: str | None, row: int) -> list[str]:
    """Decode the JSON array stored in the restrictions cell."""
    if not value:
        return []
    try:
        restrictions = json.loads(value)
    except json.JSONDecodeError as e:
        raise _import_error(str(e), row=row, field="restrictions") from e
    if not isinstance(restrictions, list) or not all(
        isinstance(r, str) for r in restrictions
    ):
        raise _import_error("expected a JSON list of strings", row=row, field="restrictions")
    return restrictions


def _parse_number(value: str) -> int | float:
    """Parse a CSV cell, keeping integers as integers."""
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        return float(text)


# JSON


def policy_to_json(policy: CancellationPolicy, indent: int | None = 2) -> str:
    return policy.model_dump_json(indent=indent)


def policy_from_json(text: str | bytes) -> CancellationPolicy:
    """Parse a policy exported by policy_to_json().

    Raises:
        PolicyError: IMPORT_FAILED if the text is not a valid policy
    """
    try:
        return CancellationPolicy.model_validate_json(text)
    except ValidationError as e:
        raise _validation_error(e) from e


# CSV: policies


def policies_to_csv(policies: Iterable[CancellationPolicy]) -> str:
    """Export policies as CSV with one row per rule."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=POLICY_CSV_FIELDS, lineterminator="\n")
    writer.writeheader()
    for policy in policies:
        for index, rule in enumerate(policy.rules):
            writer.writerow(
                {
                    "facility_id": policy.facility_id,
                    "policy_id": policy.policy_id,
                    "name": policy.name,
                    "description": policy.description,
                    "version": policy.version,
                    "restrictions": json.dumps(policy.restrictions),
                    "created_at": policy.created_at.isoformat(),
                    "updated_at": policy.updated_at.isoformat(),
                    "rule_index": index,
                    "hours_before_reservation": rule.hours_before_reservation,
                    "fee_percentage": rule.fee_percentage,
                    "rule_description": rule.description,
                }
            )
    return buffer.getvalue()


def policies_from_csv(text: str) -> list[CancellationPolicy]:
    """Import policies exported by policies_to_csv().

    Rows are grouped by (facility_id, policy_id) in order of first
    appearance; rules are ordered by rule_index.

    Raises:
        PolicyError: IMPORT_FAILED naming the first bad row (header is row 1)
    """
    reader = csv.DictReader(io.StringIO(text))
    missing = [f for f in POLICY_CSV_FIELDS if f not in (reader.fieldnames or [])]
    if missing:
        raise _import_error(f"missing columns: {', '.join(missing)}", row=1)

    groups: dict[tuple[str, str], dict[str, Any]] = {}
    for row_number, row in enumerate(reader, start=2):
        key = (row["facility_id"], row["policy_id"])
        try:
            rule_index = int(row["rule_index"])
            rule = {
                "hours_before_reservation": int(row["hours_before_reservation"]),
                "fee_percentage": int(row["fee_percentage"]),
                "description": row["rule_description"] or "",
            }
            version = int(row["version"])
        except (TypeError, ValueError) as e:
            raise _import_error(str(e), row=row_number) from e

        if key not in groups:
            groups[key] = {
                "row": row_number,
                "data": {
                    "facility_id": row["facility_id"],
                    "policy_id": row["policy_id"],
                    "name": row["name"],
                    "description": row["description"] or "",
                    "version": version,
                    "restrictions": _parse_restrictions(
                        row["restrictions"], row_number
                    ),
                    "created_at": row["created_at"],
                    "updated_at": row["updated_at"],
                },
                "rules": [],
            }
        groups[key]["rules"].append((rule_index, rule))

    policies = []
    for group in groups.values():
        ordered = [rule for _, rule in sorted(group["rules"], key=lambda r: r[0])]
        try:
            policies.append(
                CancellationPolicy.model_validate({**group["data"], "rules": ordered})
            )
        except ValidationError as e:
            raise _validation_error(e, row=group["row"]) from e
    return policies


# CSV: cancellation records


def records_to_csv(records: Iterable[CancellationRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=RECORD_CSV_FIELDS, lineterminator="\n")
    writer.writeheader()
    for record in records:
        writer.writerow(
            {
                "record_id": record.record_id,
                "facility_id": record.facility_id,
                "user_id": record.user_id,
                "reservation_amount": str(record.reservation_amount),
                "cancellation_fee": str(record.cancellation_fee),
                "cancelled_at": record.cancelled_at.isoformat(),
                "reason": record.reason,
                "status": record.status.value,
            }
        )
    return buffer.getvalue()


def records_from_csv(text: str) -> list[CancellationRecord]:
    """Import cancellation records exported by records_to_csv().

    Raises:
        PolicyError: IMPORT_FAILED naming the first bad row (header is row 1)
    """
    reader = csv.DictReader(io.StringIO(text))
    missing = [f for f in RECORD_CSV_FIELDS if f not in (reader.fieldnames or [])]
    if missing:
        raise _import_error(f"missing columns: {', '.join(missing)}", row=1)

    records = []
    for row_number, row in enumerate(reader, start=2):
        try:
            data = {
                **{k: v for k, v in row.items() if k in RECORD_CSV_FIELDS},
                "reservation_amount": _parse_number(row["reservation_amount"]),
                "cancellation_fee": _parse_number(row["cancellation_fee"]),
                "reason": row["reason"] or "",
            }
        except (AttributeError, ValueError) as e:
            raise _import_error(str(e), row=row_number) from e
        try:
            records.append(CancellationRecord.model_validate(data))
        except ValidationError as e:
            raise _validation_error(e, row=row_number) from e
    return records
