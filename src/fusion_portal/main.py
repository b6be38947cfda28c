"""
Fusion Portal - Main Application.

FastAPI application serving the client portal's session, verification,
billing and account flows on top of the serverless backend.
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from uuid import UUID, uuid4

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fusion_portal import __version__
from fusion_portal.config import get_settings
from fusion_portal.core.notifications import Notifier
from fusion_portal.deps import get_notifier, get_verification_queue
from fusion_portal.exceptions import PortalException
from fusion_portal.observability import get_metrics_store
from fusion_portal.schemas import HealthResponse, Notification

# Import module routers
from fusion_portal.modules.session.router import router as session_router
from fusion_portal.modules.layout.router import router as layout_router
from fusion_portal.modules.verify.router import router as verify_router
from fusion_portal.modules.billing.router import router as billing_router
from fusion_portal.modules.keys.router import router as keys_router
from fusion_portal.modules.activity.router import router as activity_router
from fusion_portal.modules.account.router import router as account_router

# Configure standard logging
logging.basicConfig(
    level=get_settings().app_log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("fusion_portal")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    logger.info(
        f"Starting Fusion Portal v{__version__} "
        f"[env={settings.app_env}] "
        f"[backend={settings.backend.base_url}] "
        f"[session={settings.session.backend}] "
        f"[features={settings.features.to_dict()}]"
    )
    yield
    if get_verification_queue.cache_info().currsize:
        # in-flight verifications are cancelled with their rows
        get_verification_queue().clear_queue()
    logger.info("Shutting down Fusion Portal")


# Create FastAPI application
app = FastAPI(
    title="Fusion Portal",
    description="Client portal for audio verification: session, organizations, verification queue and billing.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Middleware
# =============================================================================


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests."""
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info(f"[{request_id}] {request.method} {request.url.path}")

    response = await call_next(request)

    logger.info(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code}")

    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(PortalException)
async def portal_exception_handler(request: Request, exc: PortalException):
    """Handle portal exceptions."""
    request_id_str = getattr(request.state, "request_id", None)
    request_id = None
    if request_id_str:
        try:
            request_id = UUID(request_id_str)
        except (ValueError, TypeError):
            pass

    if exc.code == "VALIDATION_ERROR":
        logger.info(f"Rejected input: {exc.message}")
    else:
        logger.warning(f"PortalException: {exc.code} - {exc.message}")
    get_metrics_store().record_error(exc.code)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "details": exc.details,
                "request_id": str(request_id) if request_id else None,
            }
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id_str = getattr(request.state, "request_id", None)

    logger.error(f"Unhandled exception on {request.url.path}")
    logger.error(f"Exception type: {type(exc).__name__}")
    logger.error(f"Exception message: {str(exc)}")
    logger.error(f"Traceback:\n{traceback.format_exc()}")
    get_metrics_store().record_error("INTERNAL_ERROR")

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": str(exc) if get_settings().app_debug else "An unexpected error occurred",
                "request_id": request_id_str,
            }
        },
    )


# =============================================================================
# Health, Metrics, Notifications
# =============================================================================


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version=__version__,
        features=settings.features.to_dict(),
        app_env=settings.app_env,
        is_production=settings.is_production,
    )


@app.get("/metrics", tags=["health"])
def get_metrics() -> dict:
    """
    Get current metrics summary.

    Returns metrics for:
    - Backend function calls (count, errors, latency percentiles)
    - Verification outcomes (authentic, tampered, unverified, error, cancelled)
    - Error counts by code
    """
    return get_metrics_store().get_summary()


@app.get("/client/notifications", response_model=list[Notification], tags=["session"])
async def drain_notifications(notifier: Notifier = Depends(get_notifier)):
    """Pending user-visible notifications, oldest first. Reading clears them."""
    return notifier.drain()


# =============================================================================
# Register Module Routers
# =============================================================================

app.include_router(session_router)
app.include_router(layout_router)
app.include_router(verify_router)
app.include_router(billing_router)
app.include_router(keys_router)
app.include_router(activity_router)
app.include_router(account_router)


# =============================================================================
# Root Endpoint
# =============================================================================


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint redirect to docs."""
    return {"message": "Welcome to Fusion Portal", "docs": "/docs"}
