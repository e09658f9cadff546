from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import firebase_admin
from firebase_admin import messaging
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.fcm_token import FcmToken
from src.services.clock import now_local

logger = logging.getLogger(__name__)


def mask_uid(uid: str) -> str:
    if not uid:
        return ""
    if len(uid) <= 10:
        return uid[:3] + "..."
    return uid[:6] + "..." + uid[-4:]


def firebase_ready() -> bool:
    # set once main.py's lifespan calls initialize_app
    return bool(getattr(firebase_admin, "_apps", None))


def _data_to_str(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    if not data:
        return {}
    return {k: str(v) for k, v in data.items() if v is not None}


def _is_dead_token(exc: Exception) -> bool:
    # error class names differ between SDK versions, so the message is checked too
    msg = (str(exc) or "").lower()
    name = exc.__class__.__name__.lower()
    return (
        "unregistered" in name
        or "unregistered" in msg
        or "not registered" in msg
        or "registration-token-not-registered" in msg
        or "invalid registration" in msg
    )


def upsert_token(
    db: Session,
    owner_uid: str,
    token: str,
    platform: str = "unknown",
    device_id: Optional[str] = None,
) -> FcmToken:
    """Register a device token; a token seen before moves to ``owner_uid``. The caller commits."""
    now = now_local()

    row = db.execute(select(FcmToken).where(FcmToken.token == token)).scalars().first()
    if row:
        row.owner_uid = owner_uid
        row.platform = platform
        row.device_id = device_id
        row.is_active = True
        row.last_seen_at = now
    else:
        row = FcmToken(
            owner_uid=owner_uid,
            token=token,
            platform=platform,
            device_id=device_id,
            is_active=True,
            last_seen_at=now,
        )
        db.add(row)
    logger.info("[fcm] token registered owner=%s platform=%s", mask_uid(owner_uid), platform)
    return row


def deactivate_token(db: Session, owner_uid: str, token: str) -> int:
    row = db.execute(
        select(FcmToken).where(
            FcmToken.owner_uid == owner_uid,
            FcmToken.token == token,
        )
    ).scalars().first()
    if not row:
        return 0
    row.is_active = False
    logger.info("[fcm] token deactivated owner=%s", mask_uid(owner_uid))
    return 1


def _active_tokens(db: Session, owner_uid: str) -> List[FcmToken]:
    return list(
        db.execute(
            select(FcmToken).where(
                FcmToken.owner_uid == owner_uid,
                FcmToken.is_active.is_(True),
            )
        )
        .scalars()
        .all()
    )


def send_push_to_user(
    db: Session,
    owner_uid: str,
    title: str,
    body: str,
    data: Optional[Dict[str, Any]] = None,
) -> Tuple[int, int, int]:
    """
    return (success_count, fail_count, deactivated_count)
    The caller commits.
    """
    if not firebase_ready():
        raise RuntimeError("Firebase Admin SDK is not initialized (check firebase_key_path)")

    tokens = _active_tokens(db, owner_uid)
    if not tokens:
        return 0, 0, 0

    msg = messaging.MulticastMessage(
        tokens=[t.token for t in tokens],
        notification=messaging.Notification(title=title, body=body),
        data=_data_to_str(data),
    )
    resp = messaging.send_each_for_multicast(msg)

    now = now_local()
    deactivated = 0
    for token, r in zip(tokens, resp.responses):
        if r.success:
            token.last_sent_at = now
        elif _is_dead_token(r.exception or Exception("unknown fcm error")):
            token.is_active = False
            deactivated += 1

    return resp.success_count, resp.failure_count, deactivated
