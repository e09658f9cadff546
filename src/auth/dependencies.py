# src/auth/dependencies.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.db.database import get_db
from src.models.users import User
from src.auth.token_verifier import JwksUnavailableError, verify_id_token


bearer_scheme = HTTPBearer(auto_error=False)


def verify_or_raise(token: str) -> Dict[str, Any]:
    try:
        payload = verify_id_token(token)
    except JwksUnavailableError:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Authentication service unavailable")
    if payload is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token")
    return payload


def get_token_payload(
    bearer: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Dict[str, Any]:
    if not bearer or bearer.scheme.lower() != "bearer" or not bearer.credentials:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing Authorization header")
    return verify_or_raise(bearer.credentials)


def get_current_user(
    payload: Dict[str, Any] = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, payload["sub"])
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not registered")
    return user
