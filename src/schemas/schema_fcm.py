from typing import Literal, Optional

from pydantic import Field

from src.schemas.schema_common import ApiModel


class RegisterTokenRequest(ApiModel):
    token: str = Field(min_length=10, max_length=255)
    platform: Literal["android", "ios", "web", "unknown"] = "unknown"
    device_id: Optional[str] = Field(default=None, max_length=128)


class RegisterTokenResponse(ApiModel):
    ok: bool


class DeactivateTokenResponse(ApiModel):
    # 0 when the token was unknown or belongs to someone else
    updated: int
