"""Unit tests for active-policy repositories (in-memory and DynamoDB)."""

from typing import Any

import pytest

from feepolicy.models import CancellationPolicy, ConflictError
from feepolicy.services.policy_repository import (
    DynamoDBPolicyRepository,
    InMemoryPolicyRepository,
)


@pytest.fixture(params=["memory", "dynamodb"])
def repository(request: pytest.FixtureRequest) -> Any:
    """Each repository implementation in turn."""
    if request.param == "memory":
        return InMemoryPolicyRepository()
    return DynamoDBPolicyRepository(request.getfixturevalue("dynamodb_service"))


class TestPolicyRepository:
    """Optimistic version checks on writes."""

    def test_missing_facility_returns_none(self, repository: Any) -> None:
        assert repository.get("facility-unknown") is None

    def test_first_write_expects_version_zero(
        self, repository: Any, standard_policy: CancellationPolicy
    ) -> None:
        v1 = standard_policy.model_copy(update={"version": 1})

        repository.put(v1, expected_version=0)
        stored = repository.get("facility-1")

        assert stored is not None
        assert stored.version == 1
        assert stored.rules == standard_policy.rules
        assert stored.created_at == standard_policy.created_at

    def test_stale_version_conflicts(
        self, repository: Any, standard_policy: CancellationPolicy
    ) -> None:
        repository.put(standard_policy.model_copy(update={"version": 1}), expected_version=0)

        with pytest.raises(ConflictError) as exc_info:
            repository.put(
                standard_policy.model_copy(update={"version": 1}), expected_version=0
            )

        assert exc_info.value.details is not None
        assert exc_info.value.details["actual_version"] == "1"

    def test_sequential_writes(
        self, repository: Any, standard_policy: CancellationPolicy
    ) -> None:
        repository.put(standard_policy.model_copy(update={"version": 1}), expected_version=0)
        repository.put(standard_policy.model_copy(update={"version": 2}), expected_version=1)

        stored = repository.get("facility-1")

        assert stored is not None and stored.version == 2

    def test_nonzero_expectation_on_missing_policy_conflicts(
        self, repository: Any, standard_policy: CancellationPolicy
    ) -> None:
        with pytest.raises(ConflictError):
            repository.put(standard_policy.model_copy(update={"version": 4}), expected_version=3)


class TestInMemorySeeding:
    """The in-memory store can be seeded with policies."""

    def test_seeded_policy_is_returned(self, standard_policy: CancellationPolicy) -> None:
        repository = InMemoryPolicyRepository([standard_policy])

        assert repository.get("facility-1") is standard_policy
