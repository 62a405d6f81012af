"""Unit tests for the signed token codec."""

from __future__ import annotations

import base64
import json
import uuid
from datetime import UTC, datetime, timedelta

import jwt
import pytest
from freezegun import freeze_time

from gatehouse.security.tokens import (
    Token,
    TokenDecodeError,
    decode,
    encode,
    new_csrf_token,
    new_identifier,
)
from gatehouse.services._shared.errors import InvalidTokenError

SECRET = "codec-test-secret-with-enough-entropy-0123456789"
OTHER_SECRET = "another-secret-with-enough-entropy-9876543210"


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _refresh(**overrides) -> Token:
    params = {
        "issuer": "gatehouse",
        "subject": new_identifier(),
        "lifetime": timedelta(hours=72),
        "csrf": new_csrf_token(),
        "token_id": new_identifier(),
    }
    params.update(overrides)
    return Token.new(**params)


def test_round_trip_preserves_every_claim():
    token = _refresh()

    decoded, valid = decode(encode(token, SECRET), SECRET)

    assert valid is True
    assert decoded.same_claims(token)
    assert decoded == token
    assert decoded.duration == timedelta(hours=72)


def test_access_token_carries_no_jti():
    access = Token.new(issuer="gatehouse", subject="s", lifetime=timedelta(minutes=15), csrf="c")

    signed = encode(access, SECRET)
    claims = jwt.decode(signed, SECRET, algorithms=["HS256"])

    assert "jti" not in claims
    assert claims["csrf"] == "c"
    assert decode(signed, SECRET)[0].id == ""


def test_new_truncates_to_whole_seconds():
    now = datetime(2024, 1, 1, 8, 30, 15, 987654, tzinfo=UTC)

    token = Token.new(issuer="i", subject="s", lifetime=timedelta(minutes=15), now=now)

    assert token.issued_at == datetime(2024, 1, 1, 8, 30, 15, tzinfo=UTC)
    assert token.expires_at - token.issued_at == token.duration


def test_signed_form_is_url_safe():
    signed = encode(_refresh(), SECRET)

    assert signed.count(".") == 2
    assert all(c.isalnum() or c in "-_." for c in signed)


def test_tampered_payload_is_rejected():
    header, _, signature = encode(_refresh(), SECRET).split(".")
    forged = _b64({"iss": "gatehouse", "sub": "attacker", "iat": 1, "exp": 9999999999})

    with pytest.raises(InvalidTokenError):
        decode(f"{header}.{forged}.{signature}", SECRET)


def test_wrong_secret_is_rejected():
    with pytest.raises(InvalidTokenError):
        decode(encode(_refresh(), SECRET), OTHER_SECRET)


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "....."])
def test_malformed_input_is_rejected(garbage):
    with pytest.raises(InvalidTokenError):
        decode(garbage, SECRET)


def test_none_algorithm_is_rejected():
    now = int(datetime.now(UTC).timestamp())
    header = _b64({"alg": "none", "typ": "JWT"})
    payload = _b64({"iss": "gatehouse", "sub": "s", "iat": now, "exp": now + 60})

    with pytest.raises(InvalidTokenError):
        decode(f"{header}.{payload}.", SECRET)


def test_other_hmac_algorithm_is_rejected():
    now = int(datetime.now(UTC).timestamp())
    signed = jwt.encode(
        {"iss": "gatehouse", "sub": "s", "iat": now, "exp": now + 60},
        SECRET,
        algorithm="HS512",
    )

    with pytest.raises(InvalidTokenError):
        decode(signed, SECRET)


def test_expired_token_is_rejected():
    with freeze_time("2024-01-01 00:00:00"):
        signed = encode(
            Token.new(issuer="gatehouse", subject="s", lifetime=timedelta(minutes=15)), SECRET
        )
    with freeze_time("2024-01-01 00:16:00"), pytest.raises(InvalidTokenError):
        decode(signed, SECRET)


def test_token_is_valid_until_expiry():
    with freeze_time("2024-01-01 00:00:00"):
        signed = encode(
            Token.new(issuer="gatehouse", subject="s", lifetime=timedelta(minutes=15)), SECRET
        )
    with freeze_time("2024-01-01 00:14:59"):
        token, valid = decode(signed, SECRET)
    assert valid is True
    assert token.subject == "s"


def test_token_issued_in_the_future_is_rejected():
    with freeze_time("2024-01-01 01:00:00"):
        signed = encode(
            Token.new(issuer="gatehouse", subject="s", lifetime=timedelta(hours=2)), SECRET
        )
    with freeze_time("2024-01-01 00:00:00"), pytest.raises(InvalidTokenError):
        decode(signed, SECRET)


def test_missing_required_claim_is_a_decode_error():
    signed = jwt.encode({"iss": "gatehouse", "sub": "s"}, SECRET, algorithm="HS256")

    with pytest.raises(TokenDecodeError):
        decode(signed, SECRET)


def test_new_identifier_is_random_uuid4():
    ids = {new_identifier() for _ in range(50)}

    assert len(ids) == 50
    assert all(uuid.UUID(i).version == 4 for i in ids)


def test_new_csrf_token_is_random():
    assert new_csrf_token() != new_csrf_token()


def test_same_claims_detects_any_field_change():
    token = _refresh()

    assert token.same_claims(Token.from_bytes(token.to_bytes()))
    assert not token.same_claims(
        Token(
            id=token.id,
            issuer=token.issuer,
            subject=token.subject,
            issued_at=token.issued_at,
            expires_at=token.expires_at,
            duration=token.duration,
            csrf="different",
        )
    )


def test_from_bytes_rejects_corrupt_payload():
    with pytest.raises(ValueError):
        Token.from_bytes(b"\xff\x00 not json")
