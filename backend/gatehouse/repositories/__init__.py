"""Repository package exposing persistence-layer access."""

from __future__ import annotations

from gatehouse.repositories.base import BaseRepository
from gatehouse.repositories.user import UserRepository

__all__ = ["BaseRepository", "UserRepository"]
