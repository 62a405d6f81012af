from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


class LegacyError(Exception):
    """Legacy system failure other than a credential mismatch."""


class LegacyUserNotFound(LegacyError):
    """The legacy system has no user with that name."""


class LegacyWrongCredentials(LegacyError):
    """The legacy system rejected the password."""


@dataclass(frozen=True, slots=True)
class LegacyProfile:
    """
    Profile data carried over during lazy migration.

    :ivar email: Contact address, possibly empty.
    :ivar user_class: Legacy role/class name.
    :ivar admin: Administrator flag.
    :ivar join_date: Original join date, when the legacy system recorded one.
    """

    email: str = ""
    user_class: str = "user"
    admin: bool = False
    join_date: datetime | None = None


class LegacyVerifier(Protocol):
    """Port to the legacy credential store, consulted only for unknown users."""

    def verify(self, username: str, password: str) -> None:
        """
        Check credentials against the legacy system.

        :raises LegacyUserNotFound: Unknown user.
        :raises LegacyWrongCredentials: Password mismatch.
        :raises LegacyError: Any other failure.
        """

    def get_profile(self, username: str) -> LegacyProfile:
        """
        Fetch migration data for ``username``.

        :raises LegacyUserNotFound: Unknown user.
        :raises LegacyError: Any other failure.
        """


class NullLegacyVerifier(LegacyVerifier):
    """Verifier used when no legacy system is configured: nobody exists there."""

    def verify(self, username: str, password: str) -> None:
        raise LegacyUserNotFound(username)

    def get_profile(self, username: str) -> LegacyProfile:
        raise LegacyUserNotFound(username)


class InMemoryLegacyVerifier(LegacyVerifier):
    """
    Legacy double keyed by username.

    :param users: ``name -> (password, profile)`` mapping.
    """

    def __init__(self, users: dict[str, tuple[str, LegacyProfile]] | None = None) -> None:
        self.users = dict(users or {})
        self.verify_calls = 0
        self.fail_with: LegacyError | None = None

    def verify(self, username: str, password: str) -> None:
        self.verify_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        entry = self.users.get(username)
        if entry is None:
            raise LegacyUserNotFound(username)
        if entry[0] != password:
            raise LegacyWrongCredentials(username)

    def get_profile(self, username: str) -> LegacyProfile:
        entry = self.users.get(username)
        if entry is None:
            raise LegacyUserNotFound(username)
        return entry[1]
