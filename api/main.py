"""
api/main.py -- FastAPI application entry point for CarStore.

Exposes the car, customer and user records over HTTP. The web UI in web/ is
mounted separately by asgi.py.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests          -- one log line per request, including rejections
  2. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  3. CORSMiddleware        -- CORS headers (credentials allowed) for the front end
  4. SlowAPIMiddleware     -- per-route rate limits from api.limiter
  5. authorization_gate    -- 403 for /api/* requests without a valid session

Lifespan opens the stores, builds one MutationFlow per record type and puts
everything on app.state; shutdown disposes the engines.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, FieldError, HealthResponse
from api.routes.v1.cars import router as cars_router
from api.routes.v1.customers import router as customers_router
from api.routes.v1.users import router as users_router
from auth.gate import AUTH_USER_KEY, HEALTH_PATH, GateConfig, build_gate_config, check_request
from auth.schemas import build_user_flow
from auth.store import UserStore
from core.config import get_settings
from core.errors import AppError, AuthorizationError, ValidationError
from inventory.schemas import build_car_flow, build_customer_flow
from inventory.store import InventoryStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("carstore.api")
gate_logger = logging.getLogger("carstore.gate")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Store wiring
# ---------------------------------------------------------------------------


def attach_stores(app: FastAPI, user_store: UserStore, inventory: InventoryStore) -> None:
    """Put the stores and their mutation flows on app.state.

    Shared by the real lifespan and the test lifespan so both wire the app
    the same way.
    """
    app.state.user_store = user_store
    app.state.inventory = inventory
    app.state.user_flow = build_user_flow(user_store)
    app.state.car_flow = build_car_flow(inventory)
    app.state.customer_flow = build_customer_flow(inventory)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores on startup and dispose their engines on shutdown."""
    logger.info("CarStore API starting up")
    attach_stores(app, UserStore(), InventoryStore())
    if not app.state.user_store.has_users():
        logger.warning("No users exist yet -- create one with: python main.py create-user")
    logger.info("Stores initialized")

    yield

    app.state.inventory.close()
    app.state.user_store.close()
    logger.info("CarStore API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CarStore API",
    description="Cars, customers and users for a small car dealership.",
    version=VERSION,
    lifespan=lifespan,
    # Docs live under /api/ so the gate protects them like any other API route.
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
    redoc_url=None,
)

# Immutable gate configuration, built once before the first request.
app.state.gate_config = build_gate_config(_settings)
# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


def _error_response(exc: AppError) -> JSONResponse:
    fields = None
    if isinstance(exc, ValidationError):
        fields = [FieldError(path=list(v.path), message=v.message) for v in exc.violations]
    response = JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=exc.code, message=exc.message, fields=fields),
        ).model_dump(exclude_none=True),
    )
    if exc.status_code in (401, 403):
        response.headers["Cache-Control"] = "no-store"
    return response


# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette wraps middleware in reverse registration order: the LAST one
# registered is the outermost. The gate is registered first so it sits
# innermost, behind CORS (preflight requests never reach it) and behind the
# request logger (rejections are still logged).
# ---------------------------------------------------------------------------


@app.middleware("http")
async def authorization_gate(request: Request, call_next):
    """Reject /api/* requests without a valid session credential.

    On success the decoded identity is stored on request.state.auth_user for
    downstream handlers. A rejection is terminal: the route never runs.
    """
    config: GateConfig = request.app.state.gate_config
    path = request.url.path
    if config.applies_to(path):
        try:
            identity = check_request(path, request.method, request.cookies, request.headers, config)
        except AuthorizationError as exc:
            gate_logger.info("Rejected %s %s: %s", request.method, path, exc.reason)
            return _error_response(exc)
        if identity is not None:
            setattr(request.state, AUTH_USER_KEY, identity)
    return await call_next(request)


app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)


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


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(cars_router, prefix="/api/v1", tags=["Cars"])
app.include_router(customers_router, prefix="/api/v1", tags=["Customers"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render any core.errors exception (401/403/404/409/422)."""
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 in the same shape the mutation flow uses.

    Covers what FastAPI itself validates: login bodies, non-integer ids,
    missing or non-JSON bodies. A leading "body" location is dropped so field
    paths read the same as mutation-flow violations.
    """
    fields = []
    for err in exc.errors():
        loc = list(err.get("loc", ()))
        if loc and loc[0] == "body":
            loc = loc[1:]
        fields.append(FieldError(path=loc, message=str(err.get("msg", "")).removeprefix("Value error, ")))
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(code="validation_error", message="Request validation failed.", fields=fields)
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc.detail))
        ).model_dump(exclude_none=True),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes (404), wrong methods (405) and other framework errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail))
        ).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the server log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code="internal_error", message="An unexpected error occurred.")
        ).model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Health endpoint -- in the gate's bypass set, no rate limit.
# ---------------------------------------------------------------------------


@app.get(HEALTH_PATH, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
