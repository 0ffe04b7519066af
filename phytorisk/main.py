"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from phytorisk.config import settings
from phytorisk.middleware.error_handler import ErrorHandlerMiddleware
from phytorisk.middleware.rate_limit import limiter
from phytorisk.api.v1.routers import scans

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Photo gate: min={settings.leaf_min_width}x{settings.leaf_min_height}, "
                f"min_coverage={settings.leaf_min_coverage}, min_detail={settings.leaf_min_detail}, "
                f"block_rejected={settings.block_rejected_photos}")
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")

    yield

    # Shutdown
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Phytotoxic Risk API for Crop Leaf Scans

    This API estimates pesticide-related phytotoxic risk on a crop leaf from a
    photo and agronomic/weather inputs.

    ## Features

    - **Leaf Photo Analysis**: Color/texture stress score, symptom tags and a
      photo quality gate
    - **Risk Scoring**: Weighted fusion of dose, residue decay, pH, moisture,
      weather and photo stress with an explainable breakdown
    - **Legacy Payloads**: Older field names are accepted and normalized once
    - **Rate Limiting**: Protects the API from abuse

    ## Scoring Algorithm

    1. Normalize the payload and its field aliases
    2. Compute dose, decay, pH, moisture and weather component scores
    3. Fuse them into a weighted base score
    4. Add the photo stress contribution (hard-capped at 0.25)
    5. Apply the risk-lowering sanity rules
    6. Map the percentage to Low / Medium / High and attach advisory tips
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(scans.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
