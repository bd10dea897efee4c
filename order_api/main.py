"""Order Service API - Main Application.

FastAPI application providing the order management REST API and
Firebase-backed user authentication.

Usage:
    uvicorn order_api.main:app --host 127.0.0.1 --port 5000
"""

from __future__ import annotations

import os
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .dependencies import get_firebase_app, get_firestore
from .errors import OrderServiceError, ValidationFailedError, error_envelope
from .middleware.rate_limit import setup_rate_limiting
from .routers import auth, health, orders
from .version import API_VERSION

# =============================================================================
# CONFIGURATION
# =============================================================================

DEBUG_MODE = os.environ.get("DEBUG", "false").lower() == "true"
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

# CORS - comma-separated origin allowlist
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]

logging.basicConfig(
    level=logging.DEBUG if DEBUG_MODE else logging.INFO,
    format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
)
logger = logging.getLogger("order_api.main")


# =============================================================================
# LIFESPAN (Startup/Shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: connect to Firebase before serving."""
    logger.info(f"Starting Order Service API v{API_VERSION} ({ENVIRONMENT})")

    try:
        get_firebase_app()
        get_firestore()
        logger.info("Firestore connected")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("Shutting down Order Service API")


# =============================================================================
# APPLICATION
# =============================================================================

if DEBUG_MODE:
    app = FastAPI(
        title="Order Service API",
        version=API_VERSION,
        lifespan=lifespan,
    )
else:
    # Production: disable docs endpoints
    app = FastAPI(
        title="Order Service API",
        version=API_VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )


# =============================================================================
# MIDDLEWARE
# =============================================================================

setup_rate_limiting(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
    max_age=3600,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    if "server" in response.headers:
        del response.headers["server"]

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests for debugging."""
    start_time = datetime.now(timezone.utc)

    response = await call_next(request)

    duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    logger.debug(
        f"{request.method} {request.url.path} "
        f"-> {response.status_code} ({duration_ms:.0f}ms)"
    )

    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(OrderServiceError)
async def order_error_handler(request: Request, exc: OrderServiceError):
    """Turn domain errors into the response envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc, show_detail=not IS_PRODUCTION),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query parameters are VALIDATION_FAILED (400)."""
    messages = [
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    error = ValidationFailedError("Validation failed", detail=messages)
    return JSONResponse(status_code=400, content=error_envelope(error, show_detail=True))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Wrap HTTPException (auth, unknown routes) in the envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions with generic error response."""
    logger.exception(f"Unhandled exception on {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Something went wrong!",
            "code": "INTERNAL",
            "error": {} if IS_PRODUCTION else str(exc),
        }
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
app.include_router(health.router, prefix="/api", tags=["Health"])


# =============================================================================
# ROOT ENDPOINT
# =============================================================================

@app.get("/")
async def root():
    """Root endpoint - API info."""
    return {
        "message": "Order Service API is running!",
        "version": API_VERSION,
        "endpoints": {
            "signup": "POST /api/auth/signup",
            "signin": "POST /api/auth/signin",
            "getProfile": "GET /api/auth/me (requires token)",
            "orders": "/api/orders",
            "health": "/api/health",
        }
    }
