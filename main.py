"""
FluxInkVerse backend: FastAPI app for the comic catalog, reader, accounts,
admin content and premium QRIS payments.
"""
import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from middleware.global_error_handler import GlobalErrorMiddleware
from middleware.request_tracking import RequestTrackingMiddleware
from routers import admin, announcements, auth, comics, payments, profile
from utils.exceptions import FluxInkError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

logger.info("=" * 60)
logger.info(f"🚀 Starting {settings.app_name} v{settings.app_version}")
logger.info(f"📍 Environment: {settings.environment}")
logger.info("=" * 60)


# =============================================================================
# LIFESPAN MANAGEMENT
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    logger.info("🚀 [STARTUP] Beginning application startup...")

    settings.validate_production_security()

    try:
        from database import initialize_database_async
        start_time = time.time()
        db_ready = await initialize_database_async()
        init_time_ms = (time.time() - start_time) * 1000

        if db_ready:
            logger.info(f"✅ [STARTUP] Database reachable in {init_time_ms:.2f}ms")
        else:
            logger.warning(f"⚠️ [STARTUP] Database unreachable after {init_time_ms:.2f}ms - running degraded")
    except Exception as e:
        logger.error(f"❌ [STARTUP] Database initialization failed: {e}")

    if not settings.xendit_secret_key:
        logger.warning("⚠️ [STARTUP] XENDIT_SECRET_KEY not set - premium checkout disabled")
    if not settings.xendit_callback_token:
        logger.warning("⚠️ [STARTUP] XENDIT_CALLBACK_TOKEN not set - every webhook will be rejected")

    logger.info("🎉 [STARTUP] Application ready!")
    yield
    logger.info("👋 [SHUTDOWN] Shutting down")


# =============================================================================
# CREATE FASTAPI APP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="FluxInkVerse comic reader API",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production() else None,
    redoc_url="/redoc" if not settings.is_production() else None,
)


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================

@app.get("/health")
async def health():
    """Simple health check - must always work."""
    return {"status": "healthy", "timestamp": time.time()}


@app.get("/api/v1/health/config")
async def health_config():
    """Configuration status without secrets."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "supabase": {
            "configured": bool(settings.supabase_url),
            "service_key": bool(settings.supabase_service_role_key),
            "jwt_secret": bool(settings.supabase_jwt_secret),
        },
        "payments": {
            "xendit_configured": bool(settings.xendit_secret_key),
            "callback_token_configured": bool(settings.xendit_callback_token),
            "premium_price": settings.premium_price,
        }
    }


@app.get("/api/v1/health/database")
async def health_database():
    """Supabase reachability and query counters."""
    from database import get_database, health_check
    available = health_check()
    return {
        "status": "healthy" if available else "degraded",
        "database": "available" if available else "unavailable",
        "metrics": get_database().get_performance_metrics(),
    }


# =============================================================================
# MIDDLEWARE CONFIGURATION (Order matters - last added = outermost)
# =============================================================================

app.add_middleware(RequestTrackingMiddleware)
app.add_middleware(GlobalErrorMiddleware)
logger.info("✅ [MW] Request tracking and global error handler added")

# CORS must be outermost
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=86400
)
logger.info(f"✅ [MW] CORS added with {len(settings.cors_origins)} origins")


# =============================================================================
# REGISTER ROUTERS
# =============================================================================

routers_config = [
    (auth.router, "/api/v1/auth", "Authentication"),
    (comics.router, "/api/v1", "Comics"),
    (profile.router, "/api/v1/profile", "Profile"),
    (announcements.router, "/api/v1/announcements", "Announcements"),
    (admin.router, "/api/v1/admin", "Admin"),
    (payments.router, "/api/v1/payments", "Payments"),
]

for router, prefix, tag in routers_config:
    app.include_router(router, prefix=prefix, tags=[tag])
    logger.info(f"✅ [ROUTER] {tag} registered at {prefix}")


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def _with_request_headers(request: Request, response: JSONResponse) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    origin = request.headers.get("Origin", "")
    if origin and origin in settings.cors_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with CORS headers."""
    request_id = getattr(request.state, "request_id", "unknown")
    response = JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "request_id": request_id,
            "status_code": exc.status_code
        },
        headers=exc.headers
    )
    return _with_request_headers(request, response)


@app.exception_handler(FluxInkError)
async def fluxink_exception_handler(request: Request, exc: FluxInkError):
    """Domain errors carry their own HTTP status and user-facing message."""
    request_id = getattr(request.state, "request_id", "unknown")
    if exc.http_status >= 500:
        logger.error(f"[{request_id}] {exc.__class__.__name__}: {exc.to_dict()}")
    else:
        logger.info(f"[{request_id}] {exc.__class__.__name__}: {exc.message} ({exc.error_code})")

    response = JSONResponse(
        status_code=exc.http_status,
        content={
            "detail": exc.user_message,
            "error_code": exc.error_code,
            "request_id": request_id,
            "status_code": exc.http_status
        }
    )
    return _with_request_headers(request, response)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions with CORS headers."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.exception(f"[{request_id}] Unhandled exception: {exc}")

    response = JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "request_id": request_id,
            "error": "internal_server_error"
        }
    )
    return _with_request_headers(request, response)


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level="info",
    )
