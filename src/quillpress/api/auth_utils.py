"""
Bearer token helpers.

Tokens are issued by the authentication collaborator. The engine only needs
the caller's id (``sub``) and role (``role``) from a verified token.
"""

import os
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt

from quillpress.domain.entities import Identity, try_parse_id

SECRET_KEY = os.environ.get("QUILL_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
) -> str:
    """
    Sign ``data`` as a JWT with an ``exp`` claim.

    Args:
        data: Claims to encode in the token
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
        now_utc: Issue time, for deterministic tests
    """
    issued = now_utc or datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": issued + lifetime}
    return cast(str, jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM))


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verified claims, or None for a bad signature, expired or malformed token."""
    try:
        return cast(dict[str, Any], jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM]))
    except jwt.JWTError:
        return None


def identity_from_claims(claims: dict[str, Any]) -> Identity | None:
    user_id = try_parse_id(claims.get("sub"))
    role = claims.get("role")
    if user_id is None or not isinstance(role, str) or not role:
        return None
    return Identity(id=user_id, role=role)
