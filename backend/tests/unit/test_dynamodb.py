"""Unit tests for the DynamoDB service wrapper."""

from typing import Any
from unittest.mock import MagicMock, patch

from boto3.dynamodb.conditions import Key

from feepolicy.services.dynamodb import DynamoDBService


def _paged_table() -> MagicMock:
    """Table whose query returns two pages."""
    table = MagicMock()
    table.query.side_effect = [
        {"Items": [{"version": 1}, {"version": 2}], "LastEvaluatedKey": {"version": 2}},
        {"Items": [{"version": 3}]},
    ]
    return table


class TestQuery:
    """Query pagination."""

    def test_reads_every_page(self, dynamodb_service: Any) -> None:
        table = _paged_table()

        with patch.object(dynamodb_service, "_get_table", return_value=table):
            items = dynamodb_service.query(
                "policy-adjustments", Key("facility_id").eq("facility-1")
            )

        assert [item["version"] for item in items] == [1, 2, 3]
        assert table.query.call_count == 2
        assert table.query.call_args_list[1].kwargs["ExclusiveStartKey"] == {"version": 2}

    def test_limit_reads_one_page(self, dynamodb_service: Any) -> None:
        table = _paged_table()

        with patch.object(dynamodb_service, "_get_table", return_value=table):
            items = dynamodb_service.query(
                "policy-adjustments", Key("facility_id").eq("facility-1"), limit=2
            )

        assert [item["version"] for item in items] == [1, 2]
        assert table.query.call_count == 1
        assert table.query.call_args.kwargs["Limit"] == 2

    def test_query_by_partition_sorts_by_version(
        self, dynamodb_service: DynamoDBService
    ) -> None:
        for version in range(1, 4):
            dynamodb_service.put_item(
                "policy-adjustments", {"facility_id": "facility-1", "version": version}
            )

        items = dynamodb_service.query_by_partition(
            "policy-adjustments", "facility_id", "facility-1"
        )

        assert [int(item["version"]) for item in items] == [1, 2, 3]


class TestTransactWrite:
    """Transactional writes on the low-level client."""

    def test_cancelled_transaction_returns_false(
        self, dynamodb_service: DynamoDBService
    ) -> None:
        put = {
            "Put": {
                "TableName": dynamodb_service._table_name("policy-adjustments"),
                "Item": {"facility_id": {"S": "facility-1"}, "version": {"N": "1"}},
                "ConditionExpression": "attribute_not_exists(facility_id)",
            }
        }

        assert dynamodb_service.transact_write([put]) is True
        assert dynamodb_service.transact_write([put]) is False
