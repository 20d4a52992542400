"""Standard error codes for the cancellation policy engine.

Every failure the engine reports carries an ErrorCode, a human-readable
message and a recovery hint, so callers (the REST layer, periodic jobs,
admin screens) can render consistent responses.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Error codes raised by policy operations."""

    POLICY_INVALID = "ERR_POLICY_001"
    COMMIT_CONFLICT = "ERR_POLICY_003"
    INVALID_AMOUNT = "ERR_POLICY_004"
    UNKNOWN_STRATEGY = "ERR_POLICY_005"
    IMPORT_FAILED = "ERR_POLICY_006"
    INVALID_SETTINGS = "ERR_POLICY_007"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.POLICY_INVALID: "Cancellation policy is invalid",
    ErrorCode.COMMIT_CONFLICT: "Policy was changed by another update",
    ErrorCode.INVALID_AMOUNT: "Reservation amount must be a finite number",
    ErrorCode.UNKNOWN_STRATEGY: "Unknown policy adjustment strategy",
    ErrorCode.IMPORT_FAILED: "Import data could not be parsed",
    ErrorCode.INVALID_SETTINGS: "Adjustment settings are invalid",
}

# Recovery suggestions for callers
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.POLICY_INVALID: "Provide at least one rule with unique thresholds and fees between 0 and 100",
    ErrorCode.COMMIT_CONFLICT: "Re-read the active policy, review again and retry the commit",
    ErrorCode.INVALID_AMOUNT: "Check the reservation amount and try again",
    ErrorCode.UNKNOWN_STRATEGY: "Use one of the registered strategies: time_slot, notice_window",
    ErrorCode.IMPORT_FAILED: "Fix the reported row or field and import again",
    ErrorCode.INVALID_SETTINGS: "Check the POLICY_* environment variables",
}


class ErrorResponse(BaseModel):
    """Standard error body for failed policy operations."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class PolicyError(Exception):
    """Exception raised by cancellation policy operations.

    Can be caught and converted to an ErrorResponse for API responses.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details)


class ConfigurationError(PolicyError):
    """A policy or adjustment configuration cannot be used.

    Raised instead of silently defaulting, since a fee of 0 from a broken
    policy would be indistinguishable from "notice was sufficient".
    """

    def __init__(
        self,
        details: Optional[dict[str, str]] = None,
        code: ErrorCode = ErrorCode.POLICY_INVALID,
    ):
        super().__init__(code, details)


class ConflictError(PolicyError):
    """A commit raced with another update of the same facility's policy."""

    def __init__(self, details: Optional[dict[str, str]] = None):
        super().__init__(ErrorCode.COMMIT_CONFLICT, details)
