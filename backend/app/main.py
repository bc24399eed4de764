"""FastAPI application entry point."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import models  # noqa: F401  (registers tables and the change capture hook)
from app.config import settings
from app.core.errors import CoordinationError, coordination_error_handler
from app.db.database import async_session, engine, Base
from app.db.redis import close_redis, get_redis_client
from app.services.change_feed import ChangeFeed
from app.services.connection_manager import connection_manager
from app.services.delivery import LogDelivery
from app.services.notifier import Notifier
from app.services.suggestion_cache import SuggestionCache

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables (dev only; use Alembic in production)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    feed_task = None
    if settings.CHANGE_FEED_ENABLED:
        feed = ChangeFeed(
            async_session,
            Notifier(SuggestionCache(get_redis_client())),
            connection_manager,
            delivery=LogDelivery(),
        )
        feed_task = asyncio.create_task(feed.run_forever())

    yield

    # Shutdown: stop the feed, then close connections
    if feed_task is not None:
        feed_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await feed_task
    await connection_manager.close_all()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title="GymBuddy Coordination API",
    description="Partner matching, session negotiation and live sync for gym buddies",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(CoordinationError, coordination_error_handler)

# --- Routes ---
from app.api.routes import (  # noqa: E402
    availability,
    coordination,
    notifications,
    partners,
    proposals,
    sessions,
    users,
)
from app.api.websocket import sync_ws  # noqa: E402

app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(availability.router, prefix="/api/availability", tags=["availability"])
app.include_router(coordination.router, prefix="/api/coordination", tags=["coordination"])
app.include_router(partners.router, prefix="/api/partners", tags=["partners"])
app.include_router(proposals.router, prefix="/api/proposals", tags=["proposals"])
app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(sync_ws.router, tags=["websocket"])


@app.get("/health")
async def health_check():
    return {"status": "ok"}
