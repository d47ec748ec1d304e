"""
AllCare Subscriptions - FastAPI Application

Main entry point for the backend API.
Provides endpoints for membership plans, subscriptions and the wallet.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from allcare.config.settings import settings
from allcare.infrastructure.exceptions import (
    AllCareError,
    ValidationError,
    NotFoundError,
    InsufficientBalanceError,
    StoreError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(
        f"AllCare Subscriptions starting in {settings.environment} mode "
        f"with the {settings.store_backend} store..."
    )

    if settings.store_backend == "database":
        try:
            from allcare.infrastructure.db.database import init_db
            await init_db()
            logger.info("Document table ready")
        except Exception as e:
            logger.warning(f"Database initialization skipped: {e}")

    yield

    if settings.store_backend == "database":
        try:
            from allcare.infrastructure.db.database import close_db
            await close_db()
            logger.info("Database connection pool closed")
        except Exception as e:
            logger.warning(f"Database shutdown error: {e}")

    logger.info("AllCare Subscriptions shutting down...")


app = FastAPI(
    title="AllCare Subscriptions",
    description="Subscription, wallet and membership plan API for the AllCare aged care platform",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Handle validation errors."""
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(InsufficientBalanceError)
async def insufficient_balance_handler(request: Request, exc: InsufficientBalanceError):
    """Handle wallet underflow."""
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    """Handle not found errors."""
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    """Handle document store failures."""
    return JSONResponse(status_code=503, content=exc.to_dict())


@app.exception_handler(AllCareError)
async def general_error_handler(request: Request, exc: AllCareError):
    """Handle all other application errors."""
    return JSONResponse(status_code=500, content=exc.to_dict())


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "allcare-subscriptions"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "AllCare Subscriptions API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from allcare.api.routes import plans, subscriptions

app.include_router(plans.router, prefix="/api", tags=["Membership Plans"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions & Wallet"])
