"""Service layer.

- :mod:`gatehouse.services.auth`: :class:`AuthService` (login / refresh),
  :class:`WhitelistReaper` and the auth DTOs.
- :mod:`gatehouse.services._shared`: base service, error taxonomy and ports.

Nothing is re-exported here: the token codec imports the shared error module,
and an eager import of the auth service would close an import cycle.
"""
