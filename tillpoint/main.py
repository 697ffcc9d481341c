"""Tillpoint API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tillpoint.api.cart import router as cart_router
from tillpoint.api.catalog import router as catalog_router
from tillpoint.api.dependencies import get_till, reset_till
from tillpoint.api.devices import router as devices_router
from tillpoint.api.health import router as health_router
from tillpoint.api.middleware import setup_middleware
from tillpoint.domain.exceptions import (
    CartLineNotFoundError,
    DeviceProviderError,
    DomainError,
    InvalidDiscountError,
    InvalidProductDataError,
    InvalidQuantityError,
    InvalidQueryError,
    InvalidStateTransitionError,
    InvalidVariantSelectionError,
    ProductNotFoundError,
    QueryFailureError,
)
from tillpoint.infrastructure.config import settings
from tillpoint.infrastructure.database import init_models
from tillpoint.infrastructure.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    # Startup
    configure_logging()
    logger.info(
        "Starting Tillpoint API",
        version=settings.api_version,
        debug=settings.debug,
    )

    await init_models()

    till = get_till()
    logger.info(
        "Till ready",
        categories=len(till.catalog.categories),
        snapshot_items=len(till.catalog.items),
        cart_lines=len(till.engine.lines),
        device_provider=settings.device_provider,
    )

    yield

    # Shutdown
    close = getattr(till.devices, "close", None)
    if close is not None:
        await close()
    reset_till()
    logger.info("Shutting down Tillpoint API")


app = FastAPI(
    title="Tillpoint API",
    description="Cart engine and product catalog for a retail point of sale",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(catalog_router)
app.include_router(cart_router)
app.include_router(devices_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


# Most specific classes first; the first isinstance match wins.
DOMAIN_ERROR_STATUS: list[tuple[type[DomainError], int]] = [
    (ProductNotFoundError, status.HTTP_404_NOT_FOUND),
    (CartLineNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidQueryError, status.HTTP_400_BAD_REQUEST),
    (InvalidDiscountError, status.HTTP_400_BAD_REQUEST),
    (InvalidQuantityError, status.HTTP_400_BAD_REQUEST),
    (InvalidProductDataError, status.HTTP_400_BAD_REQUEST),
    (InvalidVariantSelectionError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateTransitionError, status.HTTP_409_CONFLICT),
    (QueryFailureError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (DeviceProviderError, status.HTTP_502_BAD_GATEWAY),
]


def error_code_for(exc: DomainError) -> str:
    """Derive a machine-readable code from the exception class.

    ``ProductNotFoundError`` becomes ``PRODUCT_NOT_FOUND``.
    """
    name = type(exc).__name__.removesuffix("Error")
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).upper()


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map domain errors to status codes with consistent format."""
    request_id = getattr(request.state, "request_id", None)
    status_code = next(
        (code for error_type, code in DOMAIN_ERROR_STATUS if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )

    logger.warning(
        "Domain error",
        path=request.url.path,
        error_code=error_code_for(exc),
        error=exc.message,
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code_for(exc),
            "message": exc.message,
            "details": exc.details,
            "request_id": request_id,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", {})
    else:
        error_code = "ERROR"
        message = str(detail)
        details = {}

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "request_id": request_id,
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": {},
            "request_id": request_id,
        },
    )
