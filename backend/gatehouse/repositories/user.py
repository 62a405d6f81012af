"""User repository."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from gatehouse.models.user import User
from gatehouse.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    Names are matched exactly: the legacy system treats them as opaque.
    Password checks live in the service layer, never here.
    """

    model = User

    def get_by_name(self, name: str) -> User | None:
        """Fetch a user by login name.

        :param name: Exact login name.
        :returns: User instance or ``None`` when not found.
        """
        stmt = select(User).where(User.name == name)
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_name(self, name: str) -> bool:
        stmt = select(User.id).where(User.name == name)
        return bool(self.session.execute(stmt).first())
