from datetime import UTC, datetime, timedelta
from uuid import uuid4

from quillpress.api.auth_utils import (
    create_access_token,
    decode_access_token,
    identity_from_claims,
)
from quillpress.domain.entities import Identity


def test_token_round_trip():
    identity = Identity(id=uuid4(), role="author")
    token = create_access_token({"sub": str(identity.id), "role": identity.role})
    claims = decode_access_token(token)
    assert claims is not None
    assert identity_from_claims(claims) == identity


def test_expired_token_is_rejected():
    issued = datetime.now(UTC) - timedelta(hours=2)
    token = create_access_token(
        {"sub": str(uuid4()), "role": "admin"},
        expires_delta=timedelta(minutes=5),
        now_utc=issued,
    )
    assert decode_access_token(token) is None


def test_garbage_token_is_rejected():
    assert decode_access_token("not.a.token") is None


def test_claims_need_id_and_role():
    assert identity_from_claims({"sub": "junk", "role": "admin"}) is None
    assert identity_from_claims({"sub": str(uuid4())}) is None
    assert identity_from_claims({"sub": str(uuid4()), "role": ""}) is None
