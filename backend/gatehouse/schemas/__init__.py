"""Request/response schemas."""

from __future__ import annotations

from gatehouse.schemas.auth import GrantSchema, LoginSchema, RefreshSchema

__all__ = ["GrantSchema", "LoginSchema", "RefreshSchema"]
