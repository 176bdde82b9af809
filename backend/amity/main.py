import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
from amity.api.boards import router as boards_router
from amity.api.drafts import router as drafts_router
from amity.api.media import router as media_router
from amity.api.memories import router as memories_router
from amity.core.config import APP_NAME, settings
from amity.core.errors import (
    AmityError,
    amity_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from amity.core.rate_limit import limiter
from amity.jobs.workers import run_draft_sync_job
from amity.services.background import drain

logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME, version="1.0.0")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(AmityError, amity_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)
app.add_middleware(SlowAPIMiddleware)
scheduler = AsyncIOScheduler()


def _allowed_origins() -> list[str]:
    origins = [settings.FRONTEND_URL.rstrip("/")]
    if settings.FRONTEND_URLS:
        extra = [item.strip().rstrip("/") for item in settings.FRONTEND_URLS.split(",") if item.strip()]
        origins.extend(extra)
    return list(dict.fromkeys(origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(memories_router)
app.include_router(boards_router)
app.include_router(drafts_router)
app.include_router(media_router)


@app.on_event("startup")
async def start_scheduler() -> None:
    scheduler.add_job(
        run_draft_sync_job,
        "interval",
        minutes=settings.DRAFT_SYNC_INTERVAL_MINUTES,
        id="draft_sync",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("draft sync scheduler started interval_minutes=%s", settings.DRAFT_SYNC_INTERVAL_MINUTES)


@app.on_event("shutdown")
async def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
    await drain()


@app.get("/health")
async def health():
    return {"status": "ok"}
