# src/main.py
import logging
import os
from contextlib import asynccontextmanager

import firebase_admin
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from firebase_admin import credentials

from src.config.settings import settings
from src.db.database import Base, SessionLocal, engine
from src.routers import adherence, auth, fcm, health, medicines, reminders, users
from src.services.clock import LOCAL_TZ, now_local
from src.services.reminder_notifications import process_due_reminders
from src.services.reminders import materialize_all

# registers every table on Base.metadata
import src.models  # noqa: F401

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)


def init_firebase() -> None:
    key_path = settings.firebase_key_path
    if not os.path.exists(key_path):
        # push stays disabled; the rest of the API works
        logger.warning("[firebase] key file '%s' not found, push notifications disabled", key_path)
        return

    if firebase_admin._apps:
        logger.info("[firebase] already initialized")
        return
    firebase_admin.initialize_app(credentials.Certificate(key_path))
    logger.info("[firebase] connected")


def daily_reminder_job() -> None:
    """00:00 every day: create today's reminders and refresh adherence rates."""
    db = SessionLocal()
    try:
        now = now_local()
        materialize_all(db, now.date(), now)
    except Exception:
        db.rollback()
        logger.exception("[scheduler] daily reminder job failed")
    finally:
        db.close()


def reminder_push_job() -> None:
    """Every minute: push the doses that just became due."""
    db = SessionLocal()
    try:
        process_due_reminders(db, now_local())
    except Exception:
        db.rollback()
        logger.exception("[scheduler] reminder push job failed")
    finally:
        db.close()


def create_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=LOCAL_TZ)
    scheduler.add_job(daily_reminder_job, CronTrigger(hour=0, minute=0))
    scheduler.add_job(reminder_push_job, CronTrigger(second=0))
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - create missing tables
    - connect Firebase when the key file exists
    - start the scheduler (daily materialization, per-minute push)
    """
    Base.metadata.create_all(bind=engine)
    init_firebase()

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = create_scheduler()
        scheduler.start()
        logger.info("[scheduler] started (timezone=%s)", LOCAL_TZ)
    app.state.scheduler = scheduler

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
            logger.info("[scheduler] stopped")


app = FastAPI(title="Medication Reminder API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(medicines.router)
app.include_router(reminders.router)
app.include_router(adherence.router)
app.include_router(fcm.router)


@app.get("/")
async def root():
    return {
        "message": "Medication Reminder API is running",
        "version": "1.0.0",
    }
