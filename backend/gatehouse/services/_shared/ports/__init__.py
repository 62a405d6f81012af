"""
gatehouse.services._shared.ports
================================

Collection of *ports* (hexagonal interfaces) that define the contracts
between the authentication service and its collaborators.

Modules
-------
- :mod:`whitelist`:
    Defines :class:`~.Whitelist`: durable refresh-token registry with a
    background reaper, plus the shared binary record format.

- :mod:`user_store`:
    Defines :class:`~.UserStore` and :class:`~.UserRecord`: local users.

- :mod:`legacy_verifier`:
    Defines :class:`~.LegacyVerifier` and :class:`~.LegacyProfile`: the
    legacy credential system consulted during lazy migration.

Design Notes
------------
Concrete adapters (SQL, Redis, HTTP) implement these interfaces under
``gatehouse.infra``; in-memory doubles live next to each port.
"""

from __future__ import annotations

from .legacy_verifier import (
    InMemoryLegacyVerifier,
    LegacyError,
    LegacyProfile,
    LegacyUserNotFound,
    LegacyVerifier,
    LegacyWrongCredentials,
    NullLegacyVerifier,
)
from .user_store import InMemoryUserStore, UserRecord, UserStore
from .whitelist import InMemoryWhitelist, Whitelist, pack_entry, reap_forever, unpack_entry

__all__ = [
    "Whitelist",
    "InMemoryWhitelist",
    "pack_entry",
    "unpack_entry",
    "reap_forever",
    "UserStore",
    "UserRecord",
    "InMemoryUserStore",
    "LegacyVerifier",
    "LegacyProfile",
    "LegacyError",
    "LegacyUserNotFound",
    "LegacyWrongCredentials",
    "NullLegacyVerifier",
    "InMemoryLegacyVerifier",
]
