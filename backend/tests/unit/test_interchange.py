"""Unit tests for JSON/CSV import and export."""

import json
from collections.abc import Callable

import pytest

from feepolicy.models import (
    CancellationPolicy,
    CancellationRecord,
    ErrorCode,
    PolicyError,
    policy_from_template,
)
from feepolicy.services.interchange import (
    POLICY_CSV_FIELDS,
    policies_from_csv,
    policies_to_csv,
    policy_from_json,
    policy_to_json,
    records_from_csv,
    records_to_csv,
)


class TestPolicyJson:
    """Policy JSON export/import."""

    def test_numbers_stay_integers(self, standard_policy: CancellationPolicy) -> None:
        data = json.loads(policy_to_json(standard_policy))

        assert [r["hours_before_reservation"] for r in data["rules"]] == [24, 12, 0]
        assert all(isinstance(r["fee_percentage"], int) for r in data["rules"])
        assert isinstance(data["version"], int)

    def test_import_restores_policy(self, standard_policy: CancellationPolicy) -> None:
        policy = standard_policy.model_copy(
            update={"restrictions": ["Peak season fees double"], "version": 3}
        )

        assert policy_from_json(policy_to_json(policy)) == policy

    def test_invalid_json_rejected(self) -> None:
        with pytest.raises(PolicyError) as exc_info:
            policy_from_json("{not json")

        assert exc_info.value.code == ErrorCode.IMPORT_FAILED

    def test_invalid_policy_rejected(self) -> None:
        with pytest.raises(PolicyError) as exc_info:
            policy_from_json(
                '{"policy_id": "p", "facility_id": "f", "name": "n", "rules": []}'
            )

        assert exc_info.value.details is not None
        assert exc_info.value.details["field"] == "rules"


class TestPolicyCsv:
    """Policy CSV export/import (one row per rule)."""

    def test_one_row_per_rule(self, standard_policy: CancellationPolicy) -> None:
        premium = policy_from_template("premium", "facility-2")

        lines = policies_to_csv([standard_policy, premium]).splitlines()

        assert lines[0] == ",".join(POLICY_CSV_FIELDS)
        assert len(lines) == 1 + 3 + 4

    def test_import_restores_policies(self, standard_policy: CancellationPolicy) -> None:
        premium = policy_from_template("premium", "facility-2").model_copy(
            update={"restrictions": ["First restriction", "Second, with a comma"]}
        )

        imported = policies_from_csv(policies_to_csv([standard_policy, premium]))

        assert imported == [standard_policy, premium]

    def test_restrictions_with_separators_survive(
        self, standard_policy: CancellationPolicy
    ) -> None:
        policy = standard_policy.model_copy(
            update={"restrictions": ["Fee A | Fee B applies", "Second, with a comma"]}
        )

        (imported,) = policies_from_csv(policies_to_csv([policy]))

        assert imported.restrictions == ["Fee A | Fee B applies", "Second, with a comma"]

    def test_bad_restrictions_cell_names_field(
        self, standard_policy: CancellationPolicy
    ) -> None:
        header, *rows = policies_to_csv([standard_policy]).splitlines()
        rows[0] = rows[0].replace(",[],", ",not json,")

        with pytest.raises(PolicyError) as exc_info:
            policies_from_csv("\n".join([header, *rows]))

        assert exc_info.value.code == ErrorCode.IMPORT_FAILED
        assert exc_info.value.details is not None
        assert exc_info.value.details["row"] == "2"
        assert exc_info.value.details["field"] == "restrictions"

    def test_rule_index_orders_rules(self, standard_policy: CancellationPolicy) -> None:
        header, *rows = policies_to_csv([standard_policy]).splitlines()
        shuffled = "\n".join([header, rows[2], rows[0], rows[1]])

        (policy,) = policies_from_csv(shuffled)

        assert [r.hours_before_reservation for r in policy.rules] == [24, 12, 0]

    def test_bad_number_names_row(self, standard_policy: CancellationPolicy) -> None:
        header, *rows = policies_to_csv([standard_policy]).splitlines()
        rows[1] = rows[1].replace(",30,", ",thirty,")

        with pytest.raises(PolicyError) as exc_info:
            policies_from_csv("\n".join([header, *rows]))

        assert exc_info.value.code == ErrorCode.IMPORT_FAILED
        assert exc_info.value.details is not None
        assert exc_info.value.details["row"] == "3"

    def test_missing_column_rejected(self) -> None:
        with pytest.raises(PolicyError) as exc_info:
            policies_from_csv("facility_id,policy_id\nf1,p1\n")

        assert exc_info.value.details is not None
        assert exc_info.value.details["row"] == "1"
        assert "rule_index" in exc_info.value.details["reason"]


class TestRecordCsv:
    """Cancellation record CSV export/import."""

    def test_import_restores_records(
        self, make_record: Callable[..., CancellationRecord]
    ) -> None:
        records = [make_record(amount=10000, fee=3000), make_record(amount=99.5, fee=0)]

        imported = records_from_csv(records_to_csv(records))

        assert imported == records
        assert isinstance(imported[0].reservation_amount, int)
        assert isinstance(imported[1].reservation_amount, float)

    def test_bad_amount_names_row(self, make_record: Callable[..., CancellationRecord]) -> None:
        text = records_to_csv([make_record(amount=10000)]).replace("10000", "lots")

        with pytest.raises(PolicyError) as exc_info:
            records_from_csv(text)

        assert exc_info.value.details is not None
        assert exc_info.value.details["row"] == "2"

    def test_negative_amount_rejected(
        self, make_record: Callable[..., CancellationRecord]
    ) -> None:
        text = records_to_csv([make_record(amount=10000)]).replace("10000", "-1")

        with pytest.raises(PolicyError) as exc_info:
            records_from_csv(text)

        assert exc_info.value.details is not None
        assert exc_info.value.details["field"] == "reservation_amount"
