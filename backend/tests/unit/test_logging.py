"""Unit tests for correlation-ID logging utilities."""

import logging
from collections.abc import Generator

import pytest

from feepolicy.utils.logging import (
    CorrelationIdFilter,
    StructuredFormatter,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    log_policy_operation,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def reset_correlation_id() -> Generator[None, None, None]:
    clear_correlation_id()
    yield
    clear_correlation_id()


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)


class TestCorrelationId:
    """Correlation ID context management."""

    def test_unset_by_default(self) -> None:
        assert get_correlation_id() is None

    def test_set_existing_id(self) -> None:
        assert set_correlation_id("req-123") == "req-123"
        assert get_correlation_id() == "req-123"

    def test_set_generates_id(self) -> None:
        cid = set_correlation_id()

        assert cid
        assert get_correlation_id() == cid

    def test_clear(self) -> None:
        set_correlation_id("req-123")
        clear_correlation_id()

        assert get_correlation_id() is None


class TestFormatting:
    """Filter and formatter behaviour."""

    def test_filter_adds_correlation_id(self) -> None:
        set_correlation_id("req-123")
        record = _record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "req-123"  # type: ignore[attr-defined]

    def test_formatter_prefixes_correlation_id(self) -> None:
        set_correlation_id("req-456")

        output = StructuredFormatter("%(message)s").format(_record())

        assert output == "[req-456] hello"

    def test_formatter_without_correlation_id(self) -> None:
        output = StructuredFormatter("%(message)s").format(_record())

        assert output == "[no-correlation-id] hello"

    def test_get_logger_adds_filter_once(self) -> None:
        logger = get_logger("feepolicy.tests.once")
        get_logger("feepolicy.tests.once")

        assert sum(isinstance(f, CorrelationIdFilter) for f in logger.filters) == 1


class TestLogPolicyOperation:
    """Structured policy operation messages."""

    def test_info_message(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("feepolicy.tests.ops")

        with caplog.at_level(logging.INFO, logger="feepolicy.tests.ops"):
            log_policy_operation(
                logger,
                "commit_policy",
                facility_id="facility-1",
                policy_version=2,
                changed=True,
            )

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.getMessage() == (
            "Policy operation: commit_policy | facility_id=facility-1"
            " | policy_version=2 | changed=True"
        )
        assert record.facility_id == "facility-1"  # type: ignore[attr-defined]

    def test_error_logged_at_error_level(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("feepolicy.tests.ops")

        with caplog.at_level(logging.INFO, logger="feepolicy.tests.ops"):
            log_policy_operation(logger, "commit_policy", error="version conflict")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "error=version conflict" in record.getMessage()
