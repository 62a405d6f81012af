"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP directly. They serve as stable contracts between stores,
the token codec and the authentication service.

Two families live here:

* *Collaborator signals* (``NotFoundError``, ``ConflictError``,
  ``StorageError``) raised by stores and translated inside
  :class:`~gatehouse.services.auth.service.AuthService`.
* *Public errors* (``WrongCredentialsError``, ``InvalidTokenError``,
  ``InternalError``) that cross the service boundary.

The translation to HTTP responses (RFC 7807) is handled by
``gatehouse/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL reports the constraint name; SQLite and MySQL report the
    offending column, so ``users.name`` style messages are matched too.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_name').

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    # uq_<table>_<column> -> "<table>.<column>" (sqlite: UNIQUE constraint failed: users.name)
    parts = constraint_name.lower().split("_", 2)
    if len(parts) == 3 and parts[0] == "uq":
        return f"{parts[1]}.{parts[2]}" in message
    return False


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from stores or domain logic.
    - The API layer or BaseService will later translate them to APIError.
    """

    pass


# --------------------------------------------------------------------------- #
# Collaborator signals
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in a store.

    :param entity: Entity name (e.g., "User", "Token").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint conflict occurs (the entity already exists).

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"


class StorageError(ServiceError):
    """Raised when an underlying store (SQL, Redis, file) fails or is closed."""


# --------------------------------------------------------------------------- #
# Public errors
# --------------------------------------------------------------------------- #


class WrongCredentialsError(ServiceError):
    """
    Username or password did not match.

    Never distinguishes an unknown user from a bad password.
    """

    def __init__(self, message: str = "wrong username or password") -> None:
        super().__init__(message)


class InvalidTokenError(ServiceError):
    """
    A token is malformed, wrongly signed, expired, not yet valid, unknown to
    the whitelist or fails policy checks. All cases share this one type.
    """

    def __init__(self, message: str = "invalid token") -> None:
        super().__init__(message)


class InternalError(ServiceError):
    """
    Storage, signing or legacy-system failure.

    The original exception is chained as ``__cause__`` for logging; only the
    generic message is safe to show to clients.
    """

    def __init__(self, message: str = "internal error") -> None:
        super().__init__(message)
