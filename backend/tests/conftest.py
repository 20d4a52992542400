"""Pytest configuration and fixtures for the fee policy engine tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (policies and policy-adjustments tables)
- Sample data fixtures (policies, cancellation records)
- In-memory and DynamoDB-backed PolicyService instances
"""

import datetime as dt
import os
from collections.abc import Callable
from typing import Any, Generator

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-feepolicy")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from feepolicy.models import (  # noqa: E402
    CancellationPolicy,
    CancellationRecord,
    policy_from_template,
)
from feepolicy.services.ledger import InMemoryAdjustmentLedger  # noqa: E402
from feepolicy.services.policy_repository import InMemoryPolicyRepository  # noqa: E402
from feepolicy.services.policy_service import PolicyService  # noqa: E402

TEST_FACILITY_ID = "facility-1"
# Fixed "now" for deterministic windows and notice calculations
TEST_NOW = dt.datetime(2025, 7, 15, 12, 0, tzinfo=dt.UTC)


# === DynamoDB Fixtures ===


@pytest.fixture(autouse=True)
def reset_dynamodb_singleton() -> Generator[None, None, None]:
    """Reset DynamoDB singleton before and after each test.

    This ensures tests using mock_aws get a fresh service instance
    inside the mock context rather than reusing a singleton from
    a previous test or non-mocked context.
    """
    from feepolicy.services.dynamodb import reset_dynamodb_service

    reset_dynamodb_service()
    yield
    reset_dynamodb_service()


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def dynamodb_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB client."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        yield client


@pytest.fixture
def create_tables(dynamodb_client: Any) -> None:
    """Create the policies and policy-adjustments tables."""
    dynamodb_client.create_table(
        TableName="test-feepolicy-policies",
        KeySchema=[{"AttributeName": "facility_id", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "facility_id", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    dynamodb_client.create_table(
        TableName="test-feepolicy-policy-adjustments",
        KeySchema=[
            {"AttributeName": "facility_id", "KeyType": "HASH"},
            {"AttributeName": "version", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "facility_id", "AttributeType": "S"},
            {"AttributeName": "version", "AttributeType": "N"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def dynamodb_service(create_tables: None) -> Any:
    """DynamoDBService bound to the mocked tables."""
    from feepolicy.services.dynamodb import DynamoDBService

    return DynamoDBService(environment="test")


# === Sample Data Fixtures ===


@pytest.fixture
def standard_policy() -> CancellationPolicy:
    """Standard policy (24h: 0%, 12h: 30%, 0h: 100%) for the test facility."""
    return policy_from_template("standard", TEST_FACILITY_ID)


@pytest.fixture
def make_record() -> Callable[..., CancellationRecord]:
    """Factory for cancellation records of the test facility."""
    counter = iter(range(1, 10_000))

    def _make(
        hour: int = 10,
        amount: int | float = 10000,
        fee: int | float = 0,
        facility_id: str = TEST_FACILITY_ID,
        days_ago: int = 1,
    ) -> CancellationRecord:
        cancelled_at = (TEST_NOW - dt.timedelta(days=days_ago)).replace(hour=hour)
        return CancellationRecord(
            record_id=f"rec-{next(counter)}",
            facility_id=facility_id,
            user_id="user-1",
            reservation_amount=amount,
            cancellation_fee=fee,
            cancelled_at=cancelled_at,
        )

    return _make


@pytest.fixture
def memory_service() -> PolicyService:
    """PolicyService with in-memory repository and ledger."""
    return PolicyService(InMemoryPolicyRepository(), InMemoryAdjustmentLedger())
