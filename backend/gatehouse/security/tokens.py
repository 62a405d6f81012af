"""
Signed token codec.

Access and refresh tokens are compact JWS strings signed with HMAC-SHA256.
This module is pure: no Flask, no storage, safe to call from any thread.

Claims
------
``iss``, ``sub``, ``iat``, ``exp``, ``jti`` (refresh tokens only) and the
custom ``csrf`` correlation value shared by both tokens of a grant.
"""

from __future__ import annotations

import json
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import exceptions as jwt_errors

from gatehouse.services._shared.errors import InvalidTokenError, ServiceError

ALGORITHM = "HS256"
CSRF_CLAIM = "csrf"

# Every failure below is reported as the same InvalidTokenError.
_REJECTED_ERRORS: tuple[type[Exception], ...] = (
    jwt_errors.DecodeError,  # malformed structure, bad signature
    jwt_errors.InvalidAlgorithmError,
    jwt_errors.ExpiredSignatureError,
    jwt_errors.ImmatureSignatureError,
)


class TokenSigningError(ServiceError):
    """Raised when a token cannot be signed."""


class TokenDecodeError(ServiceError):
    """Raised for decode failures that are not plain token invalidity."""


def _utc_seconds(dt: datetime) -> datetime:
    """Normalize ``dt`` to an aware UTC datetime without sub-second precision."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).replace(microsecond=0)


def _from_unix(ts: int) -> datetime:
    return datetime.fromtimestamp(int(ts), tz=UTC)


@dataclass(frozen=True, slots=True)
class Token:
    """
    Decoded or to-be-encoded token.

    :ivar id: Whitelist key; only refresh tokens carry one.
    :ivar issuer: Issuing service name.
    :ivar subject: Opaque per-grant identifier (never the username).
    :ivar issued_at: UTC issue time, whole seconds.
    :ivar expires_at: UTC expiry time, whole seconds.
    :ivar duration: ``expires_at - issued_at``.
    :ivar csrf: Correlation value binding the access/refresh pair.
    """

    issuer: str
    subject: str
    issued_at: datetime
    expires_at: datetime
    duration: timedelta
    csrf: str = ""
    id: str = field(default="")

    @classmethod
    def new(
        cls,
        *,
        issuer: str,
        subject: str,
        lifetime: timedelta,
        csrf: str = "",
        token_id: str = "",
        now: datetime | None = None,
    ) -> Token:
        """
        Build a token starting at ``now`` and living for ``lifetime``.

        Timestamps are truncated to whole seconds so that the signed form
        decodes back to an identical token.
        """
        issued_at = _utc_seconds(now or datetime.now(UTC))
        return cls(
            id=token_id,
            issuer=issuer,
            subject=subject,
            issued_at=issued_at,
            expires_at=issued_at + lifetime,
            duration=lifetime,
            csrf=csrf,
        )

    # ------------------------------------------------------------------ #
    # Comparison
    # ------------------------------------------------------------------ #

    def same_claims(self, other: Token) -> bool:
        """Compare every security-relevant field explicitly."""
        return (
            self.id == other.id
            and self.issuer == other.issuer
            and self.subject == other.subject
            and self.csrf == other.csrf
            and self.issued_at == other.issued_at
            and self.expires_at == other.expires_at
            and self.duration == other.duration
        )

    # ------------------------------------------------------------------ #
    # Serialization (whitelist payload)
    # ------------------------------------------------------------------ #

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "issuer": self.issuer,
            "subject": self.subject,
            "issued_at": int(self.issued_at.timestamp()),
            "expires_at": int(self.expires_at.timestamp()),
            "duration": int(self.duration.total_seconds()),
            "csrf": self.csrf,
        }

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":"), sort_keys=True).encode("utf-8")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Token:
        return cls(
            id=str(data.get("id", "")),
            issuer=str(data["issuer"]),
            subject=str(data["subject"]),
            issued_at=_from_unix(data["issued_at"]),
            expires_at=_from_unix(data["expires_at"]),
            duration=timedelta(seconds=int(data["duration"])),
            csrf=str(data.get("csrf", "")),
        )

    @classmethod
    def from_bytes(cls, raw: bytes) -> Token:
        """
        Rebuild a token serialized by :meth:`to_bytes`.

        :raises ValueError: If the payload is not a serialized token.
        """
        try:
            return cls.from_dict(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as exc:
            raise ValueError(f"corrupt token payload: {exc}") from exc


# --------------------------------------------------------------------------- #
# Codec
# --------------------------------------------------------------------------- #


def encode(token: Token, secret: str | bytes) -> str:
    """
    Sign ``token`` and return its compact, URL-safe string form.

    :raises TokenSigningError: If PyJWT cannot sign the claims.
    """
    claims: dict[str, Any] = {
        "iss": token.issuer,
        "sub": token.subject,
        "iat": int(token.issued_at.timestamp()),
        "exp": int(token.expires_at.timestamp()),
    }
    if token.id:
        claims["jti"] = token.id
    if token.csrf:
        claims[CSRF_CLAIM] = token.csrf
    try:
        return jwt.encode(claims, secret, algorithm=ALGORITHM)
    except (jwt_errors.PyJWTError, TypeError, ValueError) as exc:
        raise TokenSigningError(f"sign token failed: {exc}") from exc


def decode(signed: str, secret: str | bytes) -> tuple[Token, bool]:
    """
    Verify ``signed`` and rebuild the token it carries.

    Only :data:`ALGORITHM` is accepted, which rules out algorithm
    substitution (``none``, asymmetric algorithms, other HMAC sizes).

    :returns: ``(token, valid)``; ``valid`` is ``True`` whenever no error is raised.
    :raises InvalidTokenError: Malformed, tampered, expired or not-yet-valid token.
    :raises TokenDecodeError: Any other decoding failure.
    """
    try:
        claims = jwt.decode(
            signed,
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["iat", "exp"]},
        )
    except _REJECTED_ERRORS as exc:
        raise InvalidTokenError() from exc
    except jwt_errors.PyJWTError as exc:
        raise TokenDecodeError(f"could not handle this token: {exc}") from exc

    try:
        issued_at = _from_unix(claims["iat"])
        expires_at = _from_unix(claims["exp"])
    except (TypeError, ValueError, OverflowError) as exc:
        raise TokenDecodeError(f"failed to decode claims: {exc}") from exc

    token = Token(
        id=str(claims.get("jti", "")),
        issuer=str(claims.get("iss", "")),
        subject=str(claims.get("sub", "")),
        issued_at=issued_at,
        expires_at=expires_at,
        duration=expires_at - issued_at,
        csrf=str(claims.get(CSRF_CLAIM, "")),
    )
    return token, True


def new_identifier() -> str:
    """Return a random (version 4) UUID string."""
    return str(uuid.uuid4())


def new_csrf_token() -> str:
    """Return a URL-safe random correlation value."""
    return secrets.token_urlsafe(32)


__all__ = [
    "ALGORITHM",
    "Token",
    "TokenDecodeError",
    "TokenSigningError",
    "decode",
    "encode",
    "new_csrf_token",
    "new_identifier",
]
