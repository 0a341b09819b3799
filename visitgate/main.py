"""VisitGate — FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from visitgate.api.v1.auth import router as auth_router
from visitgate.api.v1.checkin import router as checkin_router
from visitgate.api.v1.guest_portal import accept_router
from visitgate.api.v1.guest_portal import router as guest_portal_router
from visitgate.api.v1.guests import router as guests_router
from visitgate.api.v1.invitations import router as invitations_router
from visitgate.api.v1.notifications import router as notifications_router
from visitgate.api.v1.visits import router as visits_router
from visitgate.config import settings
from visitgate.errors import AdmissionError

# Configure root logger so all visitgate.* loggers output to stderr.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("%s starting (timezone %s)", settings.app_name, settings.business_timezone)
    yield
    # Shutdown: dispose engine connections
    from visitgate.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Visitor admission and invitation lifecycle engine.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AdmissionError)
async def admission_error_handler(request: Request, exc: AdmissionError) -> JSONResponse:
    """Render engine failures as ``{"error": code, "detail": message}``."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


# Routers
app.include_router(auth_router)
app.include_router(invitations_router)
app.include_router(checkin_router)
app.include_router(visits_router)
app.include_router(guest_portal_router)
app.include_router(accept_router)
app.include_router(guests_router)
app.include_router(notifications_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
