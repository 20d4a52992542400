"""Fee engine services: resolution, statistics, adjustment and persistence."""

from .adjustment import (
    STRATEGY_NAMES,
    AdjustmentStrategy,
    NoticeWindowStrategy,
    TimeSlotFeeStrategy,
    adjust,
    get_strategy,
    recommend,
)
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .fee_resolver import describe_policy, resolve_fee, select_rule
from .ledger import AdjustmentLedger, DynamoDBAdjustmentLedger, InMemoryAdjustmentLedger
from .policy_repository import (
    DynamoDBPolicyRepository,
    InMemoryPolicyRepository,
    PolicyRepository,
)
from .policy_service import PolicyService
from .statistics import aggregate, filter_window

__all__ = [
    "AdjustmentLedger",
    "AdjustmentStrategy",
    "DynamoDBAdjustmentLedger",
    "DynamoDBPolicyRepository",
    "DynamoDBService",
    "InMemoryAdjustmentLedger",
    "InMemoryPolicyRepository",
    "NoticeWindowStrategy",
    "PolicyRepository",
    "PolicyService",
    "STRATEGY_NAMES",
    "TimeSlotFeeStrategy",
    "adjust",
    "aggregate",
    "describe_policy",
    "filter_window",
    "get_dynamodb_service",
    "get_strategy",
    "recommend",
    "reset_dynamodb_service",
    "resolve_fee",
    "select_rule",
]
