import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

# Import all models to ensure they're registered with SQLAlchemy Base
# This is needed for relationships between models in different files
from . import (
    models,  # noqa: F401
    models_gmail,  # noqa: F401
    models_invoice,  # noqa: F401
    models_messaging,  # noqa: F401
    models_square,  # noqa: F401
    models_twilio,  # noqa: F401
    models_visit,  # noqa: F401
)
from .config import FRONTEND_URL
from .database import Base, engine
from .domain.clients.router import router as clients_router
from .domain.dashboard.router import router as dashboard_router
from .domain.estimates.router import public_router as public_estimates_router
from .domain.estimates.router import router as estimates_router
from .domain.inbox.router import router as inbox_router
from .domain.invoices.router import router as invoices_router
from .domain.jobs.router import router as jobs_router
from .domain.leads.router import router as leads_router
from .domain.portal.router import router as portal_router
from .domain.team.router import router as team_router
from .domain.tech.router import router as tech_router
from .domain.visits.router import router as visits_router
from .pricing.router import router as pricebook_router
from .routes.email_intake import router as email_intake_router
from .routes.gmail import router as gmail_router
from .routes.square import router as square_router
from .routes.twilio import router as twilio_router
from .routes.webhooks import router as webhooks_router
from .security_middleware import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client().ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(
            f"Redis connection failed - Rate limiting will operate in fail-open mode: {e}"
        )

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="FieldDesk API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")


ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Back office
app.include_router(team_router)
app.include_router(dashboard_router)
app.include_router(clients_router)
app.include_router(leads_router)
app.include_router(jobs_router)
app.include_router(visits_router)
app.include_router(pricebook_router)
app.include_router(estimates_router)
app.include_router(invoices_router)
app.include_router(inbox_router)

# Portals
app.include_router(tech_router)
app.include_router(portal_router)
app.include_router(public_estimates_router)

# Integrations and inbound channels
app.include_router(twilio_router)
app.include_router(square_router)
app.include_router(gmail_router)
app.include_router(webhooks_router)
app.include_router(email_intake_router)


@app.get("/auth/square/callback")
async def square_oauth_callback(code: str, state: str | None = None):
    """
    Square OAuth callback - redirects to frontend
    This route matches the redirect URI registered in Square Dashboard
    """
    return RedirectResponse(url=f"{FRONTEND_URL}/auth/square/callback?code={code}&state={state or ''}")


@app.get("/")
def root():
    return {"message": "FieldDesk API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        info = redis_client.info()

        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "connected_clients": info.get("connected_clients", 0),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
