"""Application lifespan: start the status event bus, close Redis on exit.

Usage:
    from app.lifespan import lifespan
    app = FastAPI(lifespan=lifespan, ...)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.events.bus import status_bus
from app.events.subscribers import register_default_subscribers
from app.utils.cache import close_redis

logger = logging.getLogger("freightlink.lifespan")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire subscribers once, run the bus for the app's lifetime."""
    if not status_bus.subscriber_names:
        register_default_subscribers(status_bus)
    await status_bus.start()
    try:
        yield
    finally:
        # Drain pending notifications/SMS before shutting down
        await status_bus.stop()
        await close_redis()
        logger.info("FreightLink shut down")
