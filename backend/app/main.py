import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.lifespan import lifespan
from app.middleware.exceptions import register_exception_handlers
from app.routers import containers, health, notifications, shipments, tracking

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="FreightLink",
    description="Shipment & Container Tracking for China–Ghana Freight",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(shipments.router, prefix="/api/shipments", tags=["shipments"])
app.include_router(containers.router, prefix="/api/containers", tags=["containers"])
app.include_router(tracking.router, prefix="/api/tracking", tags=["tracking"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
