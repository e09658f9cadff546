# src/routers/fcm.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user
from src.db.database import get_db
from src.models.users import User
from src.schemas.schema_fcm import (
    DeactivateTokenResponse,
    RegisterTokenRequest,
    RegisterTokenResponse,
)
from src.services.fcm_push import deactivate_token, upsert_token

router = APIRouter(prefix="/api/fcm", tags=["FCM"])


@router.post("/token", response_model=RegisterTokenResponse, status_code=status.HTTP_201_CREATED)
def register_fcm_token(
    body: RegisterTokenRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Register this device for "dose due" pushes.

    The app calls this after sign-in and again whenever the Firebase SDK
    hands out a new token. A token already known is moved to the caller
    and reactivated.
    """
    upsert_token(db, current_user.uid, body.token, body.platform, body.device_id)
    db.commit()
    return RegisterTokenResponse(ok=True)


@router.delete("/token", response_model=DeactivateTokenResponse)
def unregister_fcm_token(
    token: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # sign-out or reminders switched off on this device
    updated = deactivate_token(db, current_user.uid, token)
    db.commit()
    return DeactivateTokenResponse(updated=updated)
