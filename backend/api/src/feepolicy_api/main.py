"""FastAPI application for the cancellation fee policy REST API.

This package provides REST endpoints for:
- Health checks
- Cancellation fee quotes
- Policy management (read, edit, export, review, commit)
- The adjustment ledger
"""

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from feepolicy import __version__
from feepolicy.utils.logging import configure_logging, get_logger
from feepolicy_api.exceptions import register_exception_handlers
from feepolicy_api.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from feepolicy_api.routes import adjustments_router, fees_router, policies_router

configure_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = get_logger(__name__)

app = FastAPI(
    title="Cancellation Fee Policy API",
    description="REST API for cancellation fee quotes and adaptive policy tuning",
    version=__version__,
)

# Configure CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_ID_HEADER],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

app.include_router(fees_router, prefix="/api")
app.include_router(policies_router, prefix="/api")
app.include_router(adjustments_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Root health check endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "feepolicy-api",
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "feepolicy_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["api/src", "core/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
