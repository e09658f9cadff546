from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from src.schemas.schema_common import ApiModel


class UserProfileResponse(ApiModel):
    uid: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None


class UpdateProfileRequest(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    phone: Optional[str] = Field(default=None, pattern=r"^\+?[0-9]{7,15}$")
    avatar: Optional[str] = Field(default=None, max_length=512)

    @model_validator(mode="after")
    def validate_at_least_one_field(self):
        if not any([self.name, self.phone, self.avatar]):
            raise ValueError("at least one field is required")
        return self


class LoginRequest(ApiModel):
    id_token: str = Field(min_length=1)


class LoginResponse(ApiModel):
    message: str
    user: UserProfileResponse
