"""
tests/test_identity.py — Token Verification & Caller Identity
==============================================================

Tests for:
- JWT_SECRET validation (the API refuses weak or missing secrets)
- Claim → user id resolution (``sub``, legacy ``id``, numeric ids)
- Token transport (bearer header, ``access_token`` cookie) and 401 details
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from conftest import add_user, auth

from mitube.api import deps
from mitube.api.deps import JWT_ALGORITHM, JWT_SECRET, user_id_from_claims


def _signed(claims: dict, secret: str = JWT_SECRET, algorithm: str = JWT_ALGORITHM) -> dict:
    token = jwt.encode(claims, secret, algorithm=algorithm)
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Secret validation
# ---------------------------------------------------------------------------
class TestSecretValidation:
    @pytest.mark.parametrize(
        ("value", "message"),
        [
            ("", "JWT_SECRET is not set"),
            ("    ", "JWT_SECRET is not set"),
            ("clave_secreta_predeterminada", "known weak default"),
            ("MITUBE-DEV-SECRET-CHANGE-ME", "known weak default"),
            ("tooshort", "too short"),
        ],
    )
    def test_rejects_unusable_secret(self, monkeypatch, value, message):
        monkeypatch.setenv("JWT_SECRET", value)
        with pytest.raises(RuntimeError, match=message):
            deps._load_jwt_secret()

    def test_rejects_missing_secret(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        with pytest.raises(RuntimeError, match="JWT_SECRET is not set"):
            deps._load_jwt_secret()

    def test_accepts_strong_secret_and_strips_whitespace(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "  " + "k" * 48 + "\n")
        assert deps._load_jwt_secret() == "k" * 48


# ---------------------------------------------------------------------------
# Claim resolution
# ---------------------------------------------------------------------------
class TestUserIdFromClaims:
    def test_sub_claim(self):
        assert user_id_from_claims({"sub": "alice"}) == "alice"

    def test_numeric_sub_is_stringified(self):
        assert user_id_from_claims({"sub": 42}) == "42"

    def test_zero_is_a_valid_id(self):
        assert user_id_from_claims({"sub": 0}) == "0"

    def test_falls_back_to_id_claim(self):
        assert user_id_from_claims({"id": "alice", "email": "a@mitube.mx"}) == "alice"

    def test_sub_wins_over_id(self):
        assert user_id_from_claims({"sub": "alice", "id": "bob"}) == "alice"

    @pytest.mark.parametrize("claims", [{}, {"foo": 1}, {"sub": ""}, {"sub": None}])
    def test_no_identity(self, claims):
        assert user_id_from_claims(claims) is None


# ---------------------------------------------------------------------------
# Request-level identity
# ---------------------------------------------------------------------------
class TestRequestIdentity:
    SUMMARY = "/api/stats/summary"

    def test_token_without_subject(self, client):
        resp = client.get(self.SUMMARY, headers=_signed({"foo": 1}))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has no subject"

    def test_legacy_numeric_id_claim_matches_path(self, client, db_engine):
        add_user(db_engine, "7")
        resp = client.get("/api/stats/channel/7", headers=_signed({"id": 7}))
        assert resp.status_code == 200
        assert resp.json()["subjectId"] == "7"

    def test_wrong_secret(self, client):
        resp = client.get(self.SUMMARY, headers=_signed({"sub": "alice"}, secret="z" * 40))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token"

    def test_wrong_algorithm(self, client):
        resp = client.get(self.SUMMARY, headers=_signed({"sub": "alice"}, algorithm="HS512"))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token"

    def test_expired_token(self, client):
        expired = datetime.now(UTC) - timedelta(minutes=5)
        resp = client.get(self.SUMMARY, headers=_signed({"sub": "alice", "exp": expired}))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token"

    def test_empty_bearer(self, client):
        resp = client.get(self.SUMMARY, headers={"Authorization": "Bearer "})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Missing token"

    def test_access_token_cookie(self, client, db_engine):
        add_user(db_engine, "alice")
        token = auth("alice")["Authorization"].split(" ", 1)[1]
        client.cookies.set("access_token", token)

        resp = client.get("/api/stats/channel/alice")
        assert resp.status_code == 200

    def test_header_takes_precedence_over_cookie(self, client, db_engine):
        add_user(db_engine, "alice")
        add_user(db_engine, "bob")
        client.cookies.set("access_token", auth("bob")["Authorization"].split(" ", 1)[1])

        resp = client.get("/api/stats/channel/alice", headers=auth("alice"))
        assert resp.status_code == 200
