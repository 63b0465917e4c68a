"""
POS Orders - Main Application Entry Point
Multi-tenant order lifecycle and pricing API
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import structlog

from pos_orders.core.config import get_settings
from pos_orders.core.database import get_engine, init_db
from pos_orders.core.errors import (
    ConcurrencyConflictError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    PosError,
    TenantInactiveError,
)
from pos_orders.api import orders, tenants

settings = get_settings()

logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger(__name__)

ERROR_STATUS_CODES = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TenantInactiveError, status.HTTP_403_FORBIDDEN),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ConcurrencyConflictError, status.HTTP_409_CONFLICT),
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
]


def status_code_for(error: PosError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Initializing POS Orders backend")
    init_db(get_engine())

    yield

    # Shutdown
    logger.info("Shutting down POS Orders backend")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-tenant order lifecycle, pricing and payment recording",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure middleware stack
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PosError)
async def pos_error_handler(request: Request, exc: PosError):
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Unhandled persistence failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": str(exc)}
    )


# Include routers
app.include_router(orders.router, prefix=f"{settings.API_V1_PREFIX}/orders", tags=["orders"])
app.include_router(tenants.router, prefix=f"{settings.API_V1_PREFIX}/tenants", tags=["tenants"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "pos-orders-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pos_orders.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
