"""Unit of Work contract shared by the read-write and read-only scopes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Self


class UnitOfWork(ABC):
    """
    One transactional scope around user-store calls.

    Repositories handed out by a unit of work share its session, so a user
    created inside the scope is visible to lookups in the same scope.
    """

    def __enter__(self) -> Self:
        return self

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None:
        """Finish the scope: commit or roll back, depending on the flavour."""

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
