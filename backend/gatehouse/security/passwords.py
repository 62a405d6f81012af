"""Salted, slow password hashing backed by :mod:`werkzeug.security`."""

from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(raw: str) -> str:
    """
    Hash a plaintext password.

    :param raw: Plain text password.
    :type raw: str
    :returns: Self-describing hash string (method, salt and digest).
    :rtype: str
    :raises ValueError: If the password is empty.
    """
    if not isinstance(raw, str) or not raw:
        raise ValueError("Password must be a non-empty string.")
    return generate_password_hash(raw)


def verify_password(raw: str, password_hash: str) -> bool:
    """
    Verify a plaintext password against a stored hash.

    An empty hash never matches.
    """
    if not password_hash:
        return False
    # check_password_hash is untyped; coerce to bool for mypy.
    return bool(check_password_hash(password_hash, raw))
