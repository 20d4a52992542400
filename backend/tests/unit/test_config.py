"""Unit tests for environment-driven engine settings."""

import pytest

from feepolicy.config import AdjustmentSettings, EngineSettings, NoticeWindowSettings
from feepolicy.models import ConfigurationError, ErrorCode

POLICY_ENV_VARS = [
    "POLICY_DEFAULT_STRATEGY",
    "POLICY_STORE_BACKEND",
    "POLICY_FACILITY_STRATEGIES",
    "POLICY_HOT_SLOT_SHARE",
    "POLICY_HOT_SLOT_FEE_STEP",
    "POLICY_NOTICE_WINDOW_ENABLED",
    "POLICY_CANCELLATION_RATE_THRESHOLD",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without POLICY_* overrides."""
    for name in POLICY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Settings without overrides."""

    def test_adjustment_defaults(self) -> None:
        settings = AdjustmentSettings.from_env()

        assert settings.hot_slot_share == 0.30
        assert settings.hot_slot_fee_step == 10
        assert settings.hot_slot_threshold_hours == 24
        assert settings.sparse_data_min == 5

    def test_engine_defaults(self) -> None:
        settings = EngineSettings.from_env()

        assert settings.default_strategy == "time_slot"
        assert settings.store_backend == "dynamodb"
        assert settings.facility_strategies == {}
        assert settings.notice_window.enabled is True


class TestOverrides:
    """POLICY_* environment variables."""

    def test_numeric_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLICY_HOT_SLOT_SHARE", "0.5")
        monkeypatch.setenv("POLICY_HOT_SLOT_FEE_STEP", "15")

        settings = AdjustmentSettings.from_env()

        assert settings.hot_slot_share == 0.5
        assert settings.hot_slot_fee_step == 15

    def test_boolean_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLICY_NOTICE_WINDOW_ENABLED", "false")

        assert NoticeWindowSettings.from_env().enabled is False

    def test_empty_value_keeps_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLICY_CANCELLATION_RATE_THRESHOLD", "")

        assert NoticeWindowSettings.from_env().cancellation_rate_threshold == 20.0

    def test_store_backend_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLICY_STORE_BACKEND", "memory")

        assert EngineSettings.from_env().store_backend == "memory"

    def test_facility_strategies(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(
            "POLICY_FACILITY_STRATEGIES", "facility-1=notice_window, facility-2 = time_slot,"
        )

        settings = EngineSettings.from_env()

        assert settings.facility_strategies == {
            "facility-1": "notice_window",
            "facility-2": "time_slot",
        }


class TestInvalidSettings:
    """Invalid overrides fail loudly."""

    def test_out_of_range_share(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLICY_HOT_SLOT_SHARE", "1.5")

        with pytest.raises(ConfigurationError) as exc_info:
            AdjustmentSettings.from_env()

        assert exc_info.value.code == ErrorCode.INVALID_SETTINGS
        assert exc_info.value.details is not None
        assert exc_info.value.details["field"] == "hot_slot_share"

    def test_non_numeric_step(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLICY_HOT_SLOT_FEE_STEP", "ten")

        with pytest.raises(ConfigurationError) as exc_info:
            EngineSettings.from_env()

        assert exc_info.value.code == ErrorCode.INVALID_SETTINGS

    def test_unknown_store_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLICY_STORE_BACKEND", "sqlite")

        with pytest.raises(ConfigurationError) as exc_info:
            EngineSettings.from_env()

        assert exc_info.value.details is not None
        assert exc_info.value.details["field"] == "store_backend"

    def test_bad_facility_pair(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLICY_FACILITY_STRATEGIES", "facility-1")

        with pytest.raises(ConfigurationError) as exc_info:
            EngineSettings.from_env()

        assert exc_info.value.details == {
            "field": "POLICY_FACILITY_STRATEGIES",
            "reason": "bad pair 'facility-1'",
        }
