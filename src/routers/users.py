# Profile endpoints for the signed-in user
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user
from src.db.database import get_db
from src.models.users import User
from src.schemas.schema_user import UpdateProfileRequest, UserProfileResponse

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile", response_model=UserProfileResponse)
def get_my_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/profile", response_model=UserProfileResponse)
def update_my_profile(
    body: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    for field in ("name", "phone", "avatar"):
        value = getattr(body, field)
        if value is not None:
            setattr(current_user, field, value.strip() if field == "name" else value)
    db.commit()
    db.refresh(current_user)
    return current_user
