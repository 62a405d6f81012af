"""Token codec and password hashing primitives."""

from __future__ import annotations

from .passwords import hash_password, verify_password
from .tokens import Token, TokenDecodeError, TokenSigningError, decode, encode, new_identifier

__all__ = [
    "Token",
    "TokenDecodeError",
    "TokenSigningError",
    "decode",
    "encode",
    "hash_password",
    "new_identifier",
    "verify_password",
]
