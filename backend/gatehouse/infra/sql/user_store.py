# comments in English; reST docstrings
from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gatehouse.models.user import User
from gatehouse.services._shared.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    violates,
)
from gatehouse.services._shared.ports import UserRecord, UserStore
from gatehouse.uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


def _aware(dt: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; every stored timestamp is UTC.
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=UTC)


def to_record(user: User) -> UserRecord:
    created_at = _aware(user.created_at)
    return UserRecord(
        id=user.id,
        name=user.name,
        password_hash=user.password_hash,
        email=user.email or "",
        user_class=user.user_class or "user",
        admin=bool(user.admin),
        created_at=created_at,
        joined_at=_aware(user.joined_at) or created_at,
    )


class SQLAlchemyUserStore(UserStore):
    """
    :class:`UserStore` on the Flask-SQLAlchemy ``users`` table.

    Each call runs in its own unit of work, so it must be made inside an
    application context (request handler or CLI command).
    """

    def create_user(self, record: UserRecord) -> None:
        """
        Insert ``record``; the database assigns ``id`` and ``created_at``.

        :raises ConflictError: If ``uq_users_name`` is violated.
        :raises StorageError: On any other database failure.
        """
        user = User(
            name=record.name,
            password_hash=record.password_hash,
            email=record.email,
            user_class=record.user_class or "user",
            admin=record.admin,
            joined_at=record.joined_at,
        )
        try:
            with SQLAlchemyUnitOfWork() as uow:
                uow.users.add(user)
        except IntegrityError as exc:
            if violates(exc, "uq_users_name"):
                raise ConflictError("User", f"name {record.name!r} already exists") from exc
            raise StorageError(f"could not create user: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"could not create user: {exc}") from exc

    def get_user(self, name: str) -> UserRecord:
        """
        :raises NotFoundError: If no user has that name.
        :raises StorageError: On database failures.
        """
        try:
            with SQLAlchemyReadOnlyUnitOfWork() as uow:
                user = uow.users.get_by_name(name)
                record = to_record(user) if user is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"could not get user: {exc}") from exc
        if record is None:
            raise NotFoundError("User", name)
        return record
