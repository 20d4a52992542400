"""FastAPI exception handlers for converting PolicyError to HTTP responses.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: invalid amounts and unparseable imports
- 409 Conflict: a commit raced with another policy change
- 422 Unprocessable Entity: unusable policies, strategies or settings

Usage:
    from feepolicy_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from feepolicy.models import ErrorCode, PolicyError
from feepolicy.utils.logging import get_logger

logger = get_logger(__name__)

# Starlette renamed the 422 constant between releases
HTTP_422_UNPROCESSABLE = 422

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_AMOUNT: HTTP_400_BAD_REQUEST,
    ErrorCode.IMPORT_FAILED: HTTP_400_BAD_REQUEST,
    ErrorCode.COMMIT_CONFLICT: HTTP_409_CONFLICT,
    ErrorCode.POLICY_INVALID: HTTP_422_UNPROCESSABLE,
    ErrorCode.UNKNOWN_STRATEGY: HTTP_422_UNPROCESSABLE,
    ErrorCode.INVALID_SETTINGS: HTTP_422_UNPROCESSABLE,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode, defaulting to 400."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def policy_error_handler(request: Request, exc: PolicyError) -> JSONResponse:
    """Convert a PolicyError into an ErrorResponse body.

    Args:
        request: The incoming request (unused but required by FastAPI)
        exc: The PolicyError exception

    Returns:
        JSONResponse with error details and appropriate status code.
    """
    status_code = get_http_status_for_error(exc.code)
    logger.info(
        "Policy error %s on %s %s", exc.code.value, request.method, request.url.path
    )
    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without exposing internal details."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error_code": "ERR_INTERNAL",
            "message": "An unexpected error occurred",
            "recovery": "Please try again later or contact support",
            "details": None,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(PolicyError, policy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
