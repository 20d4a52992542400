"""Engine configuration.

Thresholds and step sizes for the adjustment strategies default to the
values the fee engine has always used and can be overridden per deployment
through POLICY_* environment variables. Values are validated by pydantic;
invalid overrides raise ConfigurationError(INVALID_SETTINGS).
"""

import os
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from feepolicy.models.errors import ConfigurationError, ErrorCode

DEFAULT_RESTRICTIONS: tuple[str, ...] = (
    "An additional fee applies to customers with more than 3 cancellations",
    "Cancellations during peak season are charged at twice the regular fee",
)


def _read_env(names: dict[str, str]) -> dict[str, Any]:
    """Collect the environment overrides that are actually set."""
    values: dict[str, Any] = {}
    for field_name, env_name in names.items():
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            values[field_name] = raw
    return values


def _build(model: type[BaseModel], values: dict[str, Any]) -> Any:
    try:
        return model(**values)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        raise ConfigurationError(
            {
                "field": ".".join(str(p) for p in first.get("loc", ())) or model.__name__,
                "reason": first.get("msg", str(e)),
            },
            code=ErrorCode.INVALID_SETTINGS,
        ) from e


class AdjustmentSettings(BaseModel):
    """Thresholds for the time-slot fee strategy."""

    model_config = ConfigDict(frozen=True)

    hot_slot_share: float = Field(
        default=0.30,
        gt=0,
        le=1,
        description="Share of cancellations above which a time slot is hot",
    )
    hot_slot_fee_step: int = Field(default=10, ge=0, le=100)
    hot_slot_threshold_hours: int = Field(
        default=24,
        ge=0,
        description="Threshold of the rule raised for hot time slots",
    )
    low_yield_ratio: float = Field(
        default=0.3,
        ge=0,
        description="Average fee must reach this fraction of revenue loss",
    )
    low_yield_fee_step: int = Field(default=5, ge=0, le=100)
    sparse_data_min: int = Field(
        default=5,
        ge=0,
        description="Below this many cancellations the data counts as sparse",
    )
    sparse_data_fee_step: int = Field(default=5, ge=0, le=100)

    @classmethod
    def from_env(cls) -> "AdjustmentSettings":
        return _build(
            cls,
            _read_env(
                {
                    "hot_slot_share": "POLICY_HOT_SLOT_SHARE",
                    "hot_slot_fee_step": "POLICY_HOT_SLOT_FEE_STEP",
                    "hot_slot_threshold_hours": "POLICY_HOT_SLOT_THRESHOLD_HOURS",
                    "low_yield_ratio": "POLICY_LOW_YIELD_RATIO",
                    "low_yield_fee_step": "POLICY_LOW_YIELD_FEE_STEP",
                    "sparse_data_min": "POLICY_SPARSE_DATA_MIN",
                    "sparse_data_fee_step": "POLICY_SPARSE_DATA_FEE_STEP",
                }
            ),
        )


class NoticeWindowSettings(BaseModel):
    """Thresholds and switches for the notice-window strategy."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    cancellation_rate_threshold: float = Field(default=20.0, ge=0, le=100)
    revenue_impact_threshold: float = Field(default=10.0, ge=0, le=100)
    increase_fee: bool = True
    extend_notice_period: bool = True
    add_restrictions: bool = True
    max_fee_increase: int = Field(default=20, ge=0, le=100)
    max_notice_extension_days: int = Field(default=7, ge=0)
    restrictions: tuple[str, ...] = DEFAULT_RESTRICTIONS

    @classmethod
    def from_env(cls) -> "NoticeWindowSettings":
        return _build(
            cls,
            _read_env(
                {
                    "enabled": "POLICY_NOTICE_WINDOW_ENABLED",
                    "cancellation_rate_threshold": "POLICY_CANCELLATION_RATE_THRESHOLD",
                    "revenue_impact_threshold": "POLICY_REVENUE_IMPACT_THRESHOLD",
                    "increase_fee": "POLICY_NOTICE_WINDOW_INCREASE_FEE",
                    "extend_notice_period": "POLICY_NOTICE_WINDOW_EXTEND_NOTICE",
                    "add_restrictions": "POLICY_NOTICE_WINDOW_ADD_RESTRICTIONS",
                }
            ),
        )


class EngineSettings(BaseModel):
    """Top-level settings for the policy service."""

    model_config = ConfigDict(frozen=True)

    default_strategy: str = "time_slot"
    facility_strategies: dict[str, str] = Field(
        default_factory=dict,
        description="Per-facility strategy overrides",
    )
    store_backend: Literal["dynamodb", "memory"] = "dynamodb"
    adjustment: AdjustmentSettings = Field(default_factory=AdjustmentSettings)
    notice_window: NoticeWindowSettings = Field(default_factory=NoticeWindowSettings)

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Load settings from the environment.

        POLICY_FACILITY_STRATEGIES takes comma-separated facility=strategy
        pairs, e.g. "facility-1=notice_window,facility-2=time_slot".
        """
        values = _read_env(
            {
                "default_strategy": "POLICY_DEFAULT_STRATEGY",
                "store_backend": "POLICY_STORE_BACKEND",
            }
        )
        raw_pairs = os.getenv("POLICY_FACILITY_STRATEGIES", "")
        facility_strategies: dict[str, str] = {}
        for pair in filter(None, (p.strip() for p in raw_pairs.split(","))):
            facility_id, sep, strategy = pair.partition("=")
            if not sep or not facility_id.strip() or not strategy.strip():
                raise ConfigurationError(
                    {"field": "POLICY_FACILITY_STRATEGIES", "reason": f"bad pair {pair!r}"},
                    code=ErrorCode.INVALID_SETTINGS,
                )
            facility_strategies[facility_id.strip()] = strategy.strip()

        values["facility_strategies"] = facility_strategies
        values["adjustment"] = AdjustmentSettings.from_env()
        values["notice_window"] = NoticeWindowSettings.from_env()
        return _build(cls, values)
