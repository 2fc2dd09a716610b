"""
mitube.api.deps — FastAPI dependency injection
================================================

Identity: tokens are minted by the main MiTube server and only verified
here.  A token may arrive as ``Authorization: Bearer …`` or in the
``access_token`` cookie the web client already sends, and names the user
in ``sub`` or, for tokens from the original server, in ``id``.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated, Any

import jwt
from fastapi import Cookie, Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from mitube.config import MiTubeConfig, load_config
from mitube.database.engine import create_db_engine

# Defaults shipped in MiTube sample configs; never acceptable in a deployment.
_WEAK_SECRETS = frozenset({
    "mitube-dev-secret-change-me",
    "clave_secreta_predeterminada",
    "change-me",
    "secret",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"

_IDENTITY_CLAIMS = ("sub", "id")


def _load_jwt_secret() -> str:
    """Return the shared signing secret, refusing to start without a strong one."""
    secret = os.getenv("JWT_SECRET", "").strip()
    if not secret:
        raise RuntimeError(
            "JWT_SECRET is not set; the stats API cannot verify MiTube tokens. "
            "Use the same secret as the MiTube server."
        )
    if secret.lower() in _WEAK_SECRETS:
        raise RuntimeError(f"JWT_SECRET is a known weak default ({secret!r}).")
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars); "
            f"at least {_MIN_SECRET_LENGTH} are required."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> MiTubeConfig:
    return load_config()


def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine) as session:
        yield session


def user_id_from_claims(claims: dict[str, Any]) -> str | None:
    """The MiTube user id named by decoded token *claims*, as a string.

    Ids may be numeric in tokens from older clients; they are compared
    against string path parameters, so they are always stringified.
    """
    for claim in _IDENTITY_CLAIMS:
        value = claims.get(claim)
        if value is not None and value != "":
            return str(value)
    return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status.HTTP_401_UNAUTHORIZED, detail)


def get_current_user_id(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """Verify the caller's token and return their user id."""
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise _unauthorized("Missing token")
        token = token.strip()
    elif access_token:
        token = access_token
    else:
        raise _unauthorized("Missing token")

    try:
        # ``sub`` is type-checked by user_id_from_claims, not by PyJWT.
        claims = jwt.decode(
            token, JWT_SECRET, algorithms=[JWT_ALGORITHM], options={"verify_sub": False},
        )
    except InvalidTokenError:
        raise _unauthorized("Invalid token")

    user_id = user_id_from_claims(claims)
    if user_id is None:
        raise _unauthorized("Token has no subject")
    return user_id
