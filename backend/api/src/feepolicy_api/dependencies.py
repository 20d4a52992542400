"""FastAPI dependency injection providers for engine services.

Services are lazily instantiated and cached with @lru_cache. The store
backend is chosen by POLICY_STORE_BACKEND: "dynamodb" (default) wires the
DynamoDB repository and ledger, "memory" keeps everything in process.

Service Dependency Graph:
    EngineSettings (from POLICY_* environment variables)
    DynamoDBService (singleton via get_dynamodb_service)
        └── PolicyService
                ├── DynamoDBPolicyRepository
                └── DynamoDBAdjustmentLedger

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from feepolicy.config import EngineSettings
from feepolicy.services.dynamodb import get_dynamodb_service
from feepolicy.services.ledger import DynamoDBAdjustmentLedger, InMemoryAdjustmentLedger
from feepolicy.services.policy_repository import (
    DynamoDBPolicyRepository,
    InMemoryPolicyRepository,
)
from feepolicy.services.policy_service import PolicyService


@lru_cache
def get_settings() -> EngineSettings:
    """Get cached engine settings read from the environment."""
    return EngineSettings.from_env()


@lru_cache
def get_policy_service() -> PolicyService:
    """Get cached PolicyService instance for the configured store backend.

    Returns:
        PolicyService backed by DynamoDB or by in-memory stores.
    """
    settings = get_settings()
    if settings.store_backend == "memory":
        return PolicyService(
            repository=InMemoryPolicyRepository(),
            ledger=InMemoryAdjustmentLedger(),
            settings=settings,
        )

    db = get_dynamodb_service()
    return PolicyService(
        repository=DynamoDBPolicyRepository(db),
        ledger=DynamoDBAdjustmentLedger(db),
        settings=settings,
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the underlying DynamoDB singleton.
    """
    from feepolicy.services.dynamodb import reset_dynamodb_service

    get_settings.cache_clear()
    get_policy_service.cache_clear()
    reset_dynamodb_service()
