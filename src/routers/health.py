# src/routers/health.py
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.auth.token_verifier import jwks_cache
from src.db.database import get_db
from src.services.clock import LOCAL_TZ, now_local
from src.services.fcm_push import firebase_ready

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check(request: Request, db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.warning("[health] database check failed: %s", e)
        database = "error"

    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "ok" if database == "ok" else "degraded",
        "time": now_local().isoformat(),
        "timezone": str(LOCAL_TZ),
        "database": database,
        "auth": "keys-loaded" if jwks_cache["keys"] else "keys-not-loaded",
        "push": "enabled" if firebase_ready() else "disabled",
        "scheduler": "running" if scheduler is not None and scheduler.running else "stopped",
    }
