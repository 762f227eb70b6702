"""FastAPI application for the Flipper router.

Program errors are mapped to HTTP statuses by category: authorization
failures to 403, missing accounts to 404, lifecycle and configuration
conflicts to 409 and everything else to 400.
"""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from flipper import __version__
from flipper.api.endpoints import router
from flipper.errors import (
    AccountNotFound,
    AuthorizationError,
    ConfigurationError,
    FlipperError,
    HostError,
    LifecycleError,
)

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("FLIPPER_HOST", "0.0.0.0")
PORT = int(os.environ.get("FLIPPER_PORT", "8000"))
DEBUG = os.environ.get("FLIPPER_DEBUG", "false").lower() in ("true", "1", "yes")

app = FastAPI(
    title="Flipper",
    description="Venue-agnostic swap router with escrowed limit orders",
    version=__version__,
)

app.include_router(router)


def status_for(exc: FlipperError) -> int:
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, (LifecycleError, ConfigurationError)):
        return 409
    return 400


@app.exception_handler(FlipperError)
async def flipper_error_handler(request: Request, exc: FlipperError) -> JSONResponse:
    status = status_for(exc)
    logger.warning("request_rejected", path=request.url.path, code=exc.code.name, status=status)
    return JSONResponse(
        status_code=status,
        content={"code": int(exc.code), "error": exc.code.name, "detail": exc.detail},
    )


@app.exception_handler(HostError)
async def host_error_handler(request: Request, exc: HostError) -> JSONResponse:
    status = 404 if isinstance(exc, AccountNotFound) else 400
    logger.warning("request_rejected", path=request.url.path, error=type(exc).__name__, status=status)
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the API server.

    Configuration via environment variables:
    - FLIPPER_HOST: Host to bind to (default: 0.0.0.0)
    - FLIPPER_PORT: Port to bind to (default: 8000)
    - FLIPPER_DEBUG: Enable debug/reload mode (default: false)
    """
    uvicorn.run(
        "flipper.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
