"""Shared API response models.

ErrorResponse is the body of every PolicyError response; routes reference
it in their OpenAPI `responses` so clients see the error schema.
"""

from typing import Any

from feepolicy.models.errors import ErrorCode, ErrorResponse

__all__ = [
    "ERROR_RESPONSES",
    "ErrorCode",
    "ErrorResponse",
]

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid amount or import data"},
    409: {"model": ErrorResponse, "description": "Policy changed by another update"},
    422: {"model": ErrorResponse, "description": "Invalid policy, strategy or settings"},
}
