"""Adjustment ledger: append-only audit trail of policy changes.

Each entry is keyed by the facility and the version of the policy it
activated. A second entry for the same key is refused with ConflictError,
which makes the ledger append the point where concurrent commits of the
same facility are serialized.

record_activation() appends an entry and stores the new active policy as
one step: if the policy write fails, no entry is left behind.
"""

import datetime as dt
import threading
import uuid
from typing import Any, Protocol

from feepolicy.models import (
    AdjustmentSource,
    CancellationPolicy,
    ConflictError,
    PolicyAdjustmentRecord,
)
from feepolicy.utils.logging import get_logger

from .dynamodb import DynamoDBService
from .policy_repository import DynamoDBPolicyRepository, PolicyRepository

logger = get_logger(__name__)

ADJUSTMENTS_TABLE = "policy-adjustments"


class AdjustmentLedger(Protocol):
    """Storage for policy adjustment records."""

    def record(
        self,
        facility_id: str,
        old_policy: CancellationPolicy,
        new_policy: CancellationPolicy,
        reason: str,
        source: AdjustmentSource = AdjustmentSource.AUTOMATIC,
        strategy: str | None = None,
    ) -> PolicyAdjustmentRecord: ...

    def record_activation(
        self,
        facility_id: str,
        old_policy: CancellationPolicy,
        new_policy: CancellationPolicy,
        reason: str,
        repository: PolicyRepository,
        source: AdjustmentSource = AdjustmentSource.AUTOMATIC,
        strategy: str | None = None,
    ) -> PolicyAdjustmentRecord: ...

    def history(self, facility_id: str | None = None) -> list[PolicyAdjustmentRecord]: ...


def _new_entry(
    facility_id: str,
    old_policy: CancellationPolicy,
    new_policy: CancellationPolicy,
    reason: str,
    source: AdjustmentSource,
    strategy: str | None,
) -> PolicyAdjustmentRecord:
    return PolicyAdjustmentRecord(
        adjustment_id=f"adj-{uuid.uuid4()}",
        facility_id=facility_id,
        old_policy=old_policy.model_copy(deep=True),
        new_policy=new_policy.model_copy(deep=True),
        reason=reason,
        source=source,
        strategy=strategy,
        timestamp=dt.datetime.now(dt.UTC),
    )


def _conflict(
    facility_id: str,
    version: int,
    reason: str = "an adjustment for this policy version is already recorded",
) -> ConflictError:
    return ConflictError(
        {"facility_id": facility_id, "version": str(version), "reason": reason}
    )


class InMemoryAdjustmentLedger:
    """Process-local ledger, used for tests and the memory store backend."""

    def __init__(self) -> None:
        self._entries: list[PolicyAdjustmentRecord] = []
        self._keys: set[tuple[str, int]] = set()
        self._lock = threading.Lock()

    def _append(
        self, entry: PolicyAdjustmentRecord, repository: PolicyRepository | None = None
    ) -> PolicyAdjustmentRecord:
        key = (entry.facility_id, entry.new_policy.version)
        with self._lock:
            if key in self._keys:
                raise _conflict(entry.facility_id, entry.new_policy.version)
            if repository is not None:
                repository.put(
                    entry.new_policy, expected_version=entry.old_policy.version
                )
            self._entries.append(entry)
            self._keys.add(key)
        return entry

    def record(
        self,
        facility_id: str,
        old_policy: CancellationPolicy,
        new_policy: CancellationPolicy,
        reason: str,
        source: AdjustmentSource = AdjustmentSource.AUTOMATIC,
        strategy: str | None = None,
    ) -> PolicyAdjustmentRecord:
        return self._append(
            _new_entry(facility_id, old_policy, new_policy, reason, source, strategy)
        )

    def record_activation(
        self,
        facility_id: str,
        old_policy: CancellationPolicy,
        new_policy: CancellationPolicy,
        reason: str,
        repository: PolicyRepository,
        source: AdjustmentSource = AdjustmentSource.AUTOMATIC,
        strategy: str | None = None,
    ) -> PolicyAdjustmentRecord:
        """Store new_policy and append its entry under the ledger lock.

        The entry is appended only after repository.put() succeeded.
        """
        return self._append(
            _new_entry(facility_id, old_policy, new_policy, reason, source, strategy),
            repository,
        )

    def history(self, facility_id: str | None = None) -> list[PolicyAdjustmentRecord]:
        with self._lock:
            return [
                entry
                for entry in self._entries
                if facility_id is None or entry.facility_id == facility_id
            ]


class DynamoDBAdjustmentLedger:
    """Ledger stored in the policy-adjustments table.

    Items are keyed by facility_id (hash) and version (range); policy
    snapshots are stored as JSON strings so timestamps and integer fields
    survive unchanged.
    """

    def __init__(self, db: DynamoDBService) -> None:
        self.db = db

    @staticmethod
    def _to_item(entry: PolicyAdjustmentRecord) -> dict[str, Any]:
        item: dict[str, Any] = {
            "facility_id": entry.facility_id,
            "version": entry.new_policy.version,
            "adjustment_id": entry.adjustment_id,
            "old_policy": entry.old_policy.model_dump_json(),
            "new_policy": entry.new_policy.model_dump_json(),
            "reason": entry.reason,
            "source": entry.source.value,
            "timestamp": entry.timestamp.isoformat(),
        }
        if entry.strategy:
            item["strategy"] = entry.strategy
        return item

    def _transact_put(self, entry: PolicyAdjustmentRecord) -> dict[str, Any]:
        item = {
            name: {"N": str(value)} if name == "version" else {"S": value}
            for name, value in self._to_item(entry).items()
        }
        return {
            "Put": {
                "TableName": self.db._table_name(ADJUSTMENTS_TABLE),
                "Item": item,
                "ConditionExpression": "attribute_not_exists(facility_id)",
            }
        }

    @staticmethod
    def _from_item(item: dict[str, Any]) -> PolicyAdjustmentRecord:
        return PolicyAdjustmentRecord(
            adjustment_id=item["adjustment_id"],
            facility_id=item["facility_id"],
            old_policy=CancellationPolicy.model_validate_json(item["old_policy"]),
            new_policy=CancellationPolicy.model_validate_json(item["new_policy"]),
            reason=item["reason"],
            source=AdjustmentSource(item["source"]),
            strategy=item.get("strategy"),
            timestamp=dt.datetime.fromisoformat(item["timestamp"]),
        )

    def _put(self, entry: PolicyAdjustmentRecord) -> None:
        stored = self.db.put_item(
            table=ADJUSTMENTS_TABLE,
            item=self._to_item(entry),
            condition_expression="attribute_not_exists(facility_id)",
        )
        if not stored:
            logger.warning(
                "Ledger entry for facility %s version %d already exists",
                entry.facility_id,
                entry.new_policy.version,
            )
            raise _conflict(entry.facility_id, entry.new_policy.version)

    def record(
        self,
        facility_id: str,
        old_policy: CancellationPolicy,
        new_policy: CancellationPolicy,
        reason: str,
        source: AdjustmentSource = AdjustmentSource.AUTOMATIC,
        strategy: str | None = None,
    ) -> PolicyAdjustmentRecord:
        entry = _new_entry(facility_id, old_policy, new_policy, reason, source, strategy)
        self._put(entry)
        return entry

    def record_activation(
        self,
        facility_id: str,
        old_policy: CancellationPolicy,
        new_policy: CancellationPolicy,
        reason: str,
        repository: PolicyRepository,
        source: AdjustmentSource = AdjustmentSource.AUTOMATIC,
        strategy: str | None = None,
    ) -> PolicyAdjustmentRecord:
        """Append an entry and store new_policy in one step.

        With a DynamoDB repository both items are written in a single
        transaction. Any other repository is written after the entry, and
        the entry is deleted again if that write fails.

        Raises:
            ConflictError: If the entry exists or the stored policy moved on
        """
        entry = _new_entry(facility_id, old_policy, new_policy, reason, source, strategy)

        if isinstance(repository, DynamoDBPolicyRepository):
            committed = self.db.transact_write(
                [
                    repository.transact_put(new_policy, old_policy.version),
                    self._transact_put(entry),
                ]
            )
            if not committed:
                logger.warning(
                    "Activation of facility %s version %d cancelled by a concurrent write",
                    facility_id,
                    new_policy.version,
                )
                raise _conflict(
                    facility_id,
                    new_policy.version,
                    reason="the policy or its ledger entry changed concurrently",
                )
            return entry

        self._put(entry)
        try:
            repository.put(new_policy, expected_version=old_policy.version)
        except Exception:
            self.db.delete_item(
                ADJUSTMENTS_TABLE,
                {"facility_id": facility_id, "version": new_policy.version},
            )
            raise
        return entry

    def history(self, facility_id: str | None = None) -> list[PolicyAdjustmentRecord]:
        if facility_id is not None:
            items = self.db.query_by_partition(
                table=ADJUSTMENTS_TABLE,
                partition_key_name="facility_id",
                partition_key_value=facility_id,
            )
            return [self._from_item(item) for item in items]

        entries = [self._from_item(item) for item in self.db.scan(ADJUSTMENTS_TABLE)]
        entries.sort(key=lambda e: (e.timestamp, e.facility_id, e.new_policy.version))
        return entries
