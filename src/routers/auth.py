# Login: verify the ID token issued to the app and register the user on first sign-in
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.auth.dependencies import verify_or_raise
from src.db.database import get_db
from src.models.users import User
from src.schemas.schema_user import LoginRequest, LoginResponse, UserProfileResponse
from src.services.fcm_push import mask_uid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/google", response_model=LoginResponse)
def login_with_google(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Sign-in flow:
    1. app -> identity provider: Google sign-in, receives an ID token
    2. app -> this API: the ID token
    3. the token is verified against the provider's JWKS; the user row is
       created on first sign-in, profile fields are refreshed afterwards
    """
    payload = verify_or_raise(request.id_token)
    uid = payload["sub"]

    user = db.get(User, uid)
    created = user is None
    if created:
        user = User(
            uid=uid,
            name=payload.get("name") or "User",
            email=payload.get("email"),
            avatar=payload.get("picture"),
        )
        db.add(user)
    else:
        if payload.get("email"):
            user.email = payload["email"]
        if payload.get("picture") and not user.avatar:
            user.avatar = payload["picture"]

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered to another account",
        )
    db.refresh(user)

    logger.info("[auth] login uid=%s created=%s", mask_uid(uid), created)
    return LoginResponse(
        message="Account created" if created else "Login successful",
        user=UserProfileResponse.model_validate(user),
    )
