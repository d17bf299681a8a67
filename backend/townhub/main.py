"""
FastAPI app entrypoint.

Notification core for the town directory: quotas, subscriptions, devices, dispatch.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any townhub code reads settings
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from townhub.api.routes import events, notifications, quota, subscriptions
from townhub.config import settings
from townhub.core.constants import QUOTA_RESET_JOB_ID
from townhub.core.errors import TownHubError, townhub_error_handler
from townhub.scheduler.quota_reset_job import run_quota_reset_job

logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler(timezone="UTC")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.quota_reset_job_enabled:
        _scheduler.add_job(
            run_quota_reset_job,
            "cron",
            hour=settings.quota_reset_hour_utc,
            minute=0,
            id=QUOTA_RESET_JOB_ID,
            replace_existing=True,
        )
        _scheduler.start()
        app.state.scheduler = _scheduler
        logger.info("Quota reset job scheduled daily at %02d:00 UTC", settings.quota_reset_hour_utc)
    yield
    if _scheduler.running:
        _scheduler.shutdown(wait=False)


app = FastAPI(title="TownHub Notifications", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the admin frontend
_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.cors_origins:
    _cors_origins.extend(o.strip() for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(TownHubError, townhub_error_handler)

app.include_router(quota.router, tags=["quota"])
app.include_router(notifications.router, tags=["notifications"])
app.include_router(subscriptions.router, tags=["subscriptions"])
app.include_router(events.router, tags=["events"])


@app.get("/", include_in_schema=False)
def root():
    return {"message": "TownHub API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
