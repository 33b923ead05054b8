# fleetwatch/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from fleetwatch.routers import geofence_events, health, heartbeat, live, occupancy, share, zones
from fleetwatch.database import SessionLocal, create_tables
from fleetwatch.config import settings
from fleetwatch.services.lease_service import release_lease
from fleetwatch.utils.logger import get_logger
import time
import asyncio

logger = get_logger(__name__)

app = FastAPI(
    title="FleetWatch Geofence API",
    description="Live vehicle geofence occupancy, transition log and public share links.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (dashboard + public share pages call the API from the browser) ─────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
PUBLIC_PREFIXES = ("/api/v1/share/", "/api/v1/cron/")
PUBLIC_PATHS = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}


class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional API key auth for dashboard endpoints.
    Share links are authorized by their token; the heartbeat trigger
    checks its own CRON_SECRET. Leave API_KEY empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not settings.API_KEY or path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES):
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(heartbeat.router,       prefix="/api/v1", tags=["💓 Heartbeat"])
app.include_router(geofence_events.router, prefix="/api/v1", tags=["📜 Transition Log"])
app.include_router(occupancy.router,       prefix="/api/v1", tags=["🅿️  Occupancy"])
app.include_router(live.router,            prefix="/api/v1", tags=["📡 Live"])
app.include_router(zones.router,           prefix="/api/v1", tags=["🗺️  Zones"])
app.include_router(share.router,           prefix="/api/v1", tags=["🔗 Share Links"])
app.include_router(health.router,          prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 FleetWatch starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    regions = settings.REGIONS
    logger.info(f"🌍 Regions: {[(name, 'ok' if r.session_key else 'no key') for name, r in regions.items()]}")
    logger.info("📖 API docs at /docs")

    if settings.LIVE_FEED_ENABLED:
        from fleetwatch.services.live_feed import start_live_feed
        asyncio.create_task(start_live_feed(
            list(regions.values()),
            interval=settings.LIVE_POLL_SECONDS,
            stale_after=settings.LIVE_STALE_SECONDS,
            session_factory=SessionLocal,
        ))
        logger.info(f"📡 Live feed started (every {settings.LIVE_POLL_SECONDS}s)")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 FleetWatch shutting down...")
    db = SessionLocal()
    try:
        for name in settings.REGIONS:
            release_lease(db, name, settings.INSTANCE_ID)
    finally:
        db.close()
