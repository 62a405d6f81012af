"""Local user accounts, including those migrated from the legacy system."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column, validates

from gatehouse.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin


class User(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    Authentication identity.

    Fields
    ------
    name : str
        Login name, unique (``uq_users_name``).
    password_hash : str
        Salted slow hash from :func:`gatehouse.security.passwords.hash_password`.
    email : str
        Contact address copied from the legacy profile; may be empty.
    user_class : str
        Legacy account class, stored in column ``class``. Defaults to ``"user"``.
    admin : bool
        Administrator flag.
    joined_at : datetime | None
        Legacy join date; ``None`` means "same as ``created_at``".
    created_at : datetime
        Row creation time (from mixin).
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, default="", server_default="")
    user_class: Mapped[str] = mapped_column(
        "class", String(32), nullable=False, default="user", server_default="user"
    )
    admin: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    joined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("name", name="uq_users_name"),)

    @validates("name")
    def _normalize_name(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("User name is required.")
        return value
