import json
import time

import jwt
import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm
from pydantic import ValidationError

from src.auth import token_verifier
from src.auth.dependencies import get_current_user
from src.config.settings import Settings, settings
from src.main import app

from tests.conftest import USER_UID

PROJECT = "pill-pal-demo"
ISSUER = f"https://securetoken.google.com/{PROJECT}"
KID = "test-key-1"


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


@pytest.fixture(scope="module")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks_server(monkeypatch, private_key):
    """Serves the test key from the JWKS URL and counts the fetches."""
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({"kid": KID, "alg": "RS256", "use": "sig"})
    calls = {"count": 0}

    def fake_get(url, timeout=None):
        calls["count"] += 1
        return FakeResponse({"keys": [jwk]})

    monkeypatch.setattr(token_verifier.requests, "get", fake_get)
    monkeypatch.setattr(settings, "auth_audience", PROJECT)
    monkeypatch.setattr(settings, "auth_issuer", None)
    monkeypatch.setitem(token_verifier.jwks_cache, "keys", None)
    monkeypatch.setitem(token_verifier.jwks_cache, "expires_at", 0.0)
    return calls


@pytest.fixture
def auth_client(client):
    # real bearer verification instead of the fixed test user
    app.dependency_overrides.pop(get_current_user, None)
    return client


def make_token(private_key, sub=USER_UID, kid=KID, **claims):
    now = int(time.time())
    payload = {
        "sub": sub,
        "aud": PROJECT,
        "iss": ISSUER,
        "iat": now,
        "exp": now + 3600,
        "email": "asha@example.com",
        "name": "Asha Rao",
        "picture": "https://example.com/asha.png",
    }
    payload.update(claims)
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})


def test_login_creates_user_then_logs_in(auth_client, jwks_server, private_key):
    token = make_token(private_key, sub="new-user-0001", email="new@example.com")

    res = auth_client.post("/api/auth/google", json={"idToken": token})
    assert res.status_code == 200
    assert res.json()["message"] == "Account created"
    assert res.json()["user"]["uid"] == "new-user-0001"
    assert res.json()["user"]["name"] == "Asha Rao"
    assert res.json()["user"]["avatar"] == "https://example.com/asha.png"

    again = auth_client.post("/api/auth/google", json={"idToken": token})
    assert again.json()["message"] == "Login successful"
    # keys are cached between requests
    assert jwks_server["count"] == 1


def test_profile_with_valid_bearer(auth_client, jwks_server, private_key):
    headers = {"Authorization": f"Bearer {make_token(private_key)}"}

    res = auth_client.get("/api/users/profile", headers=headers)
    assert res.status_code == 200
    assert res.json()["uid"] == USER_UID
    assert res.json()["name"] == "Asha"


def test_profile_update(auth_client, jwks_server, private_key):
    headers = {"Authorization": f"Bearer {make_token(private_key)}"}

    res = auth_client.put("/api/users/profile", headers=headers, json={"phone": "+919876543210"})
    assert res.status_code == 200
    assert res.json()["phone"] == "+919876543210"
    assert res.json()["name"] == "Asha"

    assert auth_client.put("/api/users/profile", headers=headers, json={}).status_code == 422


def test_missing_header_is_401(auth_client, jwks_server):
    assert auth_client.get("/api/medicines").status_code == 401
    assert jwks_server["count"] == 0


@pytest.mark.parametrize(
    "claims",
    [
        {"exp": int(time.time()) - 60},
        {"aud": "someone-else"},
        {"iss": "https://evil.example.com"},
    ],
)
def test_rejected_tokens_are_401(auth_client, jwks_server, private_key, claims):
    headers = {"Authorization": f"Bearer {make_token(private_key, **claims)}"}
    assert auth_client.get("/api/medicines", headers=headers).status_code == 401


def test_token_signed_by_another_key_is_401(auth_client, jwks_server):
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    headers = {"Authorization": f"Bearer {make_token(other_key)}"}
    assert auth_client.get("/api/medicines", headers=headers).status_code == 401


def test_unknown_kid_forces_one_refresh(auth_client, jwks_server, private_key):
    headers = {"Authorization": f"Bearer {make_token(private_key, kid='rotated-away')}"}
    assert auth_client.get("/api/medicines", headers=headers).status_code == 401
    assert jwks_server["count"] == 2


def test_garbage_token_is_401(auth_client, jwks_server):
    headers = {"Authorization": "Bearer not.a.jwt"}
    assert auth_client.get("/api/medicines", headers=headers).status_code == 401


def test_unregistered_user_is_404(auth_client, jwks_server, private_key):
    headers = {"Authorization": f"Bearer {make_token(private_key, sub='stranger-42')}"}
    assert auth_client.get("/api/users/profile", headers=headers).status_code == 404


def test_jwks_outage_is_503(auth_client, jwks_server, private_key, monkeypatch):
    def broken_get(url, timeout=None):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(token_verifier.requests, "get", broken_get)
    headers = {"Authorization": f"Bearer {make_token(private_key)}"}
    assert auth_client.get("/api/medicines", headers=headers).status_code == 503


def test_token_for_another_project_is_rejected(jwks_server, private_key):
    other = "some-other-project"
    token = make_token(private_key, aud=other, iss=f"https://securetoken.google.com/{other}")
    assert token_verifier.verify_id_token(token) is None
    assert token_verifier.verify_id_token(make_token(private_key))["sub"] == USER_UID


def test_audience_setting_is_required(monkeypatch):
    monkeypatch.delenv("AUTH_AUDIENCE", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
