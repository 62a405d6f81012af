"""HTTP client for the legacy credential API used during lazy migration."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import requests

from gatehouse.services._shared.ports import (
    LegacyError,
    LegacyProfile,
    LegacyUserNotFound,
    LegacyVerifier,
    LegacyWrongCredentials,
)

log = logging.getLogger(__name__)


def _parse_admin(value: Any) -> bool:
    # Legacy rows store the flag as "Y"/"N".
    if isinstance(value, str):
        return value.strip().upper() == "Y"
    return bool(value)


def _parse_join_date(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise LegacyError(f"bad join_date {value!r}") from exc
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


class HttpLegacyVerifier(LegacyVerifier):
    """
    :class:`LegacyVerifier` over the legacy system's JSON API.

    Endpoints
    ---------
    - ``POST {base}/verify`` with ``{"username", "password"}``: 200 when the
      password matches, 404 for an unknown user, 401/403 for a mismatch.
    - ``GET {base}/users/<name>``: 200 with
      ``{"email", "class", "admin", "join_date"}``, 404 for an unknown user.

    Any other status, a transport error or a malformed body is a
    :class:`LegacyError`.

    :param base_url: API root, e.g. ``https://legacy.example.com/api``.
    :param timeout: Per-request timeout in seconds.
    :param session: Optional pre-configured :class:`requests.Session`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        try:
            return self.http.request(
                method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise LegacyError(f"legacy API unreachable: {exc}") from exc

    def verify(self, username: str, password: str) -> None:
        resp = self._request("POST", "/verify", json={"username": username, "password": password})
        if resp.status_code == 200:
            return
        if resp.status_code == 404:
            raise LegacyUserNotFound(username)
        if resp.status_code in (401, 403):
            raise LegacyWrongCredentials(username)
        log.warning("legacy.verify_unexpected status=%s", resp.status_code)
        raise LegacyError(f"legacy verify returned HTTP {resp.status_code}")

    def get_profile(self, username: str) -> LegacyProfile:
        resp = self._request("GET", f"/users/{quote(username, safe='')}")
        if resp.status_code == 404:
            raise LegacyUserNotFound(username)
        if resp.status_code != 200:
            raise LegacyError(f"legacy profile returned HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise LegacyError("legacy profile is not JSON") from exc
        if not isinstance(body, dict):
            raise LegacyError("legacy profile is not an object")

        return LegacyProfile(
            email=str(body.get("email") or ""),
            user_class=str(body.get("class") or "user"),
            admin=_parse_admin(body.get("admin")),
            join_date=_parse_join_date(body.get("join_date")),
        )
