"""
api/main.py -- FastAPI development login authority for the Billarpro client.

Stands in for the backend's POST /api/auth/login while developing offline,
so the client's remote strategy (AUTH_MODE=remote) has something real to
talk to. The web dev proxy forwards /api/* here unchanged.

Run with:  uvicorn api.main:app --port 5000 --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for the dev front-end origins
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan builds the directory validator and resolves the signing key on
startup; nothing needs tearing down.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from auth.validators import LocalCredentialValidator
from core.config import get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("billarpro.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the directory validator and resolve the token signing key."""
    settings = get_settings()
    logger.info("Billarpro login authority starting up")
    app.state.validator = LocalCredentialValidator(
        password=settings.local_password,
        latency_ms=settings.local_latency_ms,
    )
    if settings.secret_key:
        app.state.secret_key = settings.secret_key
    else:
        app.state.secret_key = secrets.token_hex(32)
        logger.warning("Using auto-generated SECRET_KEY. Issued tokens will not verify after a restart.")
    yield
    logger.info("Billarpro login authority shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Billarpro login authority",
    description="Development stand-in for the Billarpro backend login endpoint.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_methods=["POST", "GET"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)
app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


app.include_router(auth_router, prefix="/api", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Unexpected failures share one ErrorResponse envelope. Login failures are
# not exceptions: the route answers them with the {success, message} body.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 in the login envelope so the client shows the message."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content={"success": False, "message": "Too many login attempts. Try again later."},
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail))
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all. The traceback goes to the log, never to the response body."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code="internal_error", message="An unexpected error occurred.")
        ).model_dump(),
    )


@app.get("/api/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return liveness and current version. Not rate limited."""
    return HealthResponse(version=__version__)
