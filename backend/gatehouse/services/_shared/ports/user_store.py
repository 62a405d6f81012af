from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from gatehouse.services._shared.errors import ConflictError, NotFoundError


@dataclass(frozen=True, slots=True)
class UserRecord:
    """
    Local user as seen by the service layer.

    :ivar id: Store-assigned identifier (``None`` before creation).
    :ivar name: Unique login name.
    :ivar password_hash: Salted password hash, never the raw password.
    :ivar email: Contact address (may be empty for migrated users).
    :ivar user_class: Role/class inherited from the legacy system.
    :ivar admin: Administrator flag.
    :ivar created_at: Creation time in the local store.
    :ivar joined_at: Original join date (legacy) or creation time.
    """

    name: str
    password_hash: str
    email: str = ""
    user_class: str = "user"
    admin: bool = False
    id: int | None = None
    created_at: datetime | None = None
    joined_at: datetime | None = None


class UserStore(Protocol):
    """Port for local user persistence."""

    def create_user(self, record: UserRecord) -> None:
        """
        Persist a new user.

        :raises ConflictError: If the name is already taken.
        :raises StorageError: On any other storage failure.
        """

    def get_user(self, name: str) -> UserRecord:
        """
        Fetch a user by name.

        :raises NotFoundError: If no such user exists.
        """


class InMemoryUserStore(UserStore):
    """Dictionary-backed user store used in unit tests."""

    def __init__(self) -> None:
        self._by_name: dict[str, UserRecord] = {}
        self._seq = 0
        self._lock = threading.Lock()
        self.create_calls = 0

    def create_user(self, record: UserRecord) -> None:
        with self._lock:
            self.create_calls += 1
            if record.name in self._by_name:
                raise ConflictError("User", f"name {record.name!r} already exists")
            self._seq += 1
            now = datetime.now(UTC)
            self._by_name[record.name] = replace(
                record,
                id=self._seq,
                created_at=now,
                joined_at=record.joined_at or now,
            )

    def get_user(self, name: str) -> UserRecord:
        user = self._by_name.get(name)
        if user is None:
            raise NotFoundError("User", name)
        return user
