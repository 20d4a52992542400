"""Storage for the active cancellation policy of each facility."""

import threading
from typing import Any, Protocol

from feepolicy.models import CancellationPolicy, ConflictError

from .dynamodb import DynamoDBService

POLICIES_TABLE = "policies"


class PolicyRepository(Protocol):
    """Active-policy store with optimistic version checks."""

    def get(self, facility_id: str) -> CancellationPolicy | None: ...

    def put(
        self, policy: CancellationPolicy, expected_version: int
    ) -> CancellationPolicy: ...


def _stale(facility_id: str, expected: int, actual: int | None) -> ConflictError:
    return ConflictError(
        {
            "facility_id": facility_id,
            "expected_version": str(expected),
            "actual_version": "unknown" if actual is None else str(actual),
        }
    )


class InMemoryPolicyRepository:
    """Thread-safe in-process policy store."""

    def __init__(self, policies: list[CancellationPolicy] | None = None) -> None:
        self._policies: dict[str, CancellationPolicy] = {
            p.facility_id: p for p in policies or []
        }
        self._lock = threading.Lock()

    def get(self, facility_id: str) -> CancellationPolicy | None:
        with self._lock:
            return self._policies.get(facility_id)

    def put(self, policy: CancellationPolicy, expected_version: int) -> CancellationPolicy:
        """Store a policy if the stored version still equals expected_version.

        A facility without a stored policy counts as version 0.

        Raises:
            ConflictError: If another write got there first
        """
        with self._lock:
            current = self._policies.get(policy.facility_id)
            actual = current.version if current else 0
            if actual != expected_version:
                raise _stale(policy.facility_id, expected_version, actual)
            self._policies[policy.facility_id] = policy
        return policy


class DynamoDBPolicyRepository:
    """Policies table keyed by facility_id."""

    def __init__(self, db: DynamoDBService) -> None:
        self.db = db

    def get(self, facility_id: str) -> CancellationPolicy | None:
        item = self.db.get_item(POLICIES_TABLE, {"facility_id": facility_id})
        if not item:
            return None
        return CancellationPolicy.model_validate_json(item["policy"])

    @staticmethod
    def _condition(expected_version: int) -> str:
        if expected_version == 0:
            return "attribute_not_exists(facility_id) OR #version = :expected"
        return "#version = :expected"

    def transact_put(
        self, policy: CancellationPolicy, expected_version: int
    ) -> dict[str, Any]:
        """Build the conditional Put of a policy for DynamoDBService.transact_write()."""
        return {
            "Put": {
                "TableName": self.db._table_name(POLICIES_TABLE),
                "Item": {
                    "facility_id": {"S": policy.facility_id},
                    "policy_id": {"S": policy.policy_id},
                    "version": {"N": str(policy.version)},
                    "updated_at": {"S": policy.updated_at.isoformat()},
                    "policy": {"S": policy.model_dump_json()},
                },
                "ConditionExpression": self._condition(expected_version),
                "ExpressionAttributeNames": {"#version": "version"},
                "ExpressionAttributeValues": {":expected": {"N": str(expected_version)}},
            }
        }

    def put(self, policy: CancellationPolicy, expected_version: int) -> CancellationPolicy:
        """Conditionally store a policy.

        Raises:
            ConflictError: If the stored version differs from expected_version
        """
        item: dict[str, Any] = {
            "facility_id": policy.facility_id,
            "policy_id": policy.policy_id,
            "version": policy.version,
            "updated_at": policy.updated_at.isoformat(),
            "policy": policy.model_dump_json(),
        }
        stored = self.db.put_item(
            table=POLICIES_TABLE,
            item=item,
            condition_expression=self._condition(expected_version),
            expression_attribute_values={":expected": expected_version},
            expression_attribute_names={"#version": "version"},
        )
        if not stored:
            current = self.get(policy.facility_id)
            raise _stale(
                policy.facility_id,
                expected_version,
                current.version if current else None,
            )
        return policy
