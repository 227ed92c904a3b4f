"""
Main FastAPI application for the Component Engine
"""
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from component_engine import __version__
from component_engine.config import settings, validate_required_config
from component_engine.errors import ComponentEngineError
from component_engine.logging_config import logger

# Import routers
from component_engine.routers import component, github_proxy


# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Component Engine", environment=settings.ENVIRONMENT)

    # Validate required configuration
    validate_required_config()

    # Initialize Sentry if DSN provided
    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.SENTRY_ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            integrations=[FastApiIntegration()],
        )
        logger.info("Sentry initialized")

    logger.info(
        "Component Engine started",
        github_transport=settings.resolved_transport,
        github_token_configured=bool(settings.GITHUB_TOKEN),
    )

    yield

    logger.info("Shutting down Component Engine")


# Create FastAPI app
app = FastAPI(
    title="Component Engine",
    description="Component ingestion, templating and sandboxed live preview",
    version=__version__,
    lifespan=lifespan
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - Configure from environment
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in settings.CORS_ORIGINS.split(",")
    if origin.strip()
]

if settings.ENVIRONMENT == "development" or settings.DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,  # Cannot use credentials with wildcard origins
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Component Engine",
        "version": __version__,
        "status": "running",
        "github_transport": settings.resolved_transport
    }


@app.get("/health")
async def health_check():
    """Health check"""
    health = {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {}
    }

    health["checks"]["github_token"] = {
        "configured": bool(settings.GITHUB_TOKEN),
        "status": "ok" if settings.GITHUB_TOKEN else "missing"
    }
    health["checks"]["github_transport"] = {
        "transport": settings.resolved_transport,
        "status": "ok" if settings.resolved_transport in ("direct", "proxy") else "error"
    }

    # The proxy endpoints cannot work without the token
    critical_checks = ["github_token", "github_transport"]
    all_critical_ok = all(
        health["checks"][check]["status"] == "ok"
        for check in critical_checks
    )
    health["status"] = "healthy" if all_critical_ok else "degraded"

    return health


@app.get("/readiness")
async def readiness_check():
    """Kubernetes readiness probe"""
    health = await health_check()

    if health["checks"]["github_transport"]["status"] == "ok":
        return {"status": "ready"}
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "checks": health["checks"]}
    )


# Include routers
app.include_router(github_proxy.router, prefix="/api/github", tags=["GitHub Proxy"])
app.include_router(component.router, prefix="/api", tags=["Component Builder"])


# Error handlers
@app.exception_handler(ComponentEngineError)
async def component_engine_exception_handler(request: Request, exc: ComponentEngineError):
    """Typed pipeline failures become {success: false, error, error_type}"""
    logger.warning(
        "Request failed",
        error=exc.message,
        error_type=exc.error_type,
        path=request.url.path
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler with Sentry integration"""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        path=request.url.path,
        exc_info=True
    )

    if settings.SENTRY_DSN:
        sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.SENTRY_ENVIRONMENT == "development" else None
        }
    )


if __name__ == "__main__":
    import uvicorn
    reload_enabled = settings.ENVIRONMENT == "development" or settings.DEBUG
    uvicorn.run("component_engine.main:app", host="0.0.0.0", port=8001, reload=reload_enabled)
