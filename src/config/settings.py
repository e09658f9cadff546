# src/config/settings.py
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    # ignore unrelated env keys
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # DATABASE_URL wins; otherwise a MySQL URL is built from the DB_* values
    database_url: Optional[str] = None
    db_user: Optional[str] = None
    db_pass: Optional[str] = None
    db_host: str = "localhost"
    db_port: Optional[int] = None
    db_name: Optional[str] = None

    # ID token verification (Firebase / any OIDC issuer publishing a JWKS).
    # The audience is the Firebase project id and must be set.
    auth_audience: str
    auth_jwks_url: str = (
        "https://www.googleapis.com/service_accounts/v1/jwk/"
        "securetoken@system.gserviceaccount.com"
    )
    auth_issuer: Optional[str] = None
    auth_jwks_ttl_seconds: int = 60 * 60

    app_timezone: str = "Asia/Kolkata"

    firebase_key_path: str = "firebase-key.json"
    scheduler_enabled: bool = True

    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]


settings = Settings()
