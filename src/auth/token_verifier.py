# token_verifier.py
import json
import logging
import time
from typing import Any, Dict, Optional

import jwt
import requests
from jwt.algorithms import RSAAlgorithm

from src.config.settings import settings

logger = logging.getLogger(__name__)

# kid -> public key, refreshed after auth_jwks_ttl_seconds
jwks_cache: Dict[str, Any] = {
    "keys": None,
    "expires_at": 0.0,
}


class JwksUnavailableError(RuntimeError):
    """The signing keys could not be fetched."""


def _fetch_jwks() -> Dict[str, Any]:
    try:
        res = requests.get(settings.auth_jwks_url, timeout=5)
        res.raise_for_status()
        res_json = res.json()
    except (requests.RequestException, ValueError) as e:
        raise JwksUnavailableError(f"JWKS fetch failed: {e}") from e

    # Firebase also serves x509 certs elsewhere; here only the JWK form is read
    return {
        k["kid"]: RSAAlgorithm.from_jwk(json.dumps(k))
        for k in res_json.get("keys", [])
        if k.get("kid")
    }


def get_jwks(force: bool = False) -> Dict[str, Any]:
    now = time.time()
    if not force and jwks_cache["keys"] is not None and now < jwks_cache["expires_at"]:
        return jwks_cache["keys"]

    keys = _fetch_jwks()
    jwks_cache["keys"] = keys
    jwks_cache["expires_at"] = now + settings.auth_jwks_ttl_seconds
    logger.info("[auth] loaded %d signing key(s)", len(keys))
    return keys


def public_key_for(token: str):
    try:
        headers = jwt.get_unverified_header(token)
    except jwt.PyJWTError:
        return None
    kid = headers.get("kid")
    if not kid:
        return None

    key = get_jwks().get(kid)
    if key is None:
        # keys rotate; one forced reload before giving up
        key = get_jwks(force=True).get(kid)
    return key


def _issuer() -> str:
    if settings.auth_issuer:
        return settings.auth_issuer
    return f"https://securetoken.google.com/{settings.auth_audience}"


def verify_id_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify an RS256 ID token against the configured JWKS.
    Returns the claims, or None when the token is not acceptable.
    Raises JwksUnavailableError when the keys cannot be loaded.
    """
    public_key = public_key_for(token)
    if public_key is None:
        return None

    try:
        payload = jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            audience=settings.auth_audience,
            issuer=_issuer(),
            options={"require": ["exp", "iat", "aud", "iss", "sub"]},
        )
    except jwt.PyJWTError as e:
        logger.info("[auth] rejected token: %s", e)
        return None

    if not payload.get("sub"):
        return None
    return payload
