"""Build the process-wide auth objects and tie their lifetime to the app."""

from __future__ import annotations

import atexit
import logging
from collections.abc import Mapping
from typing import Any

from flask import Flask, current_app

from gatehouse.core.config import access_lifetime, refresh_lifetime, validate_auth_settings
from gatehouse.services._shared.ports import (
    InMemoryWhitelist,
    LegacyVerifier,
    NullLegacyVerifier,
    Whitelist,
)
from gatehouse.services.auth import AuthService, AuthTokenConfig, WhitelistReaper

log = logging.getLogger(__name__)

EXTENSION_KEY = "gatehouse.auth"


def build_whitelist(config: Mapping[str, Any]) -> Whitelist:
    """Instantiate the whitelist selected by ``WHITELIST_BACKEND``."""
    backend = str(config.get("WHITELIST_BACKEND", "sql")).lower()
    opts = {
        "batch_size": int(config.get("WHITELIST_REAP_BATCH_SIZE", 1000)),
        "interval": float(config.get("WHITELIST_REAP_INTERVAL", 1.0)),
    }
    if backend == "sql":
        from gatehouse.infra.sql.whitelist import SQLWhitelist

        return SQLWhitelist.from_url(config["WHITELIST_URL"], **opts)
    if backend == "redis":
        from gatehouse.core.extensions import get_redis
        from gatehouse.infra.redis.redis_whitelist import RedisWhitelist

        return RedisWhitelist(get_redis(), **opts)
    if backend == "memory":
        return InMemoryWhitelist(**opts)
    raise RuntimeError(f"Unknown WHITELIST_BACKEND {backend!r}")


def build_legacy_verifier(config: Mapping[str, Any]) -> LegacyVerifier:
    base_url = config.get("LEGACY_API_URL")
    if not base_url:
        return NullLegacyVerifier()
    from gatehouse.infra.legacy.http_verifier import HttpLegacyVerifier

    return HttpLegacyVerifier(base_url, timeout=float(config.get("LEGACY_API_TIMEOUT", 5.0)))


def token_config(config: Mapping[str, Any]) -> AuthTokenConfig:
    return AuthTokenConfig(
        issuer=config["TOKEN_ISSUER"],
        access_expires=access_lifetime(config),
        refresh_expires=refresh_lifetime(config),
        single_use_refresh=bool(config.get("REFRESH_TOKEN_SINGLE_USE", False)),
    )


class AuthComponents:
    """Holder for the long-lived objects shared by all requests.

    :ivar service: The :class:`AuthService` used by the HTTP handlers.
    :ivar whitelist: Its whitelist, closed on shutdown.
    :ivar reaper: Background reaper, or ``None`` when disabled.
    """

    def __init__(
        self,
        service: AuthService,
        whitelist: Whitelist,
        reaper: WhitelistReaper | None = None,
    ) -> None:
        self.service = service
        self.whitelist = whitelist
        self.reaper = reaper
        self._closed = False

    def shutdown(self) -> None:
        """Stop the reaper, then close the whitelist. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self.reaper is not None:
            self.reaper.stop()
        self.whitelist.close()
        log.info("auth.shutdown")


def init_app(app: Flask) -> AuthComponents:
    """
    Validate settings, build the auth stack and store it in ``app.extensions``.

    Starts the whitelist reaper when ``WHITELIST_REAPER_ENABLED`` is set and
    registers an ``atexit`` hook that shuts everything down.

    :raises RuntimeError: On an unusable configuration.
    """
    validate_auth_settings(app.config)

    from gatehouse.infra.sql.user_store import SQLAlchemyUserStore

    whitelist = build_whitelist(app.config)
    cfg = token_config(app.config)
    service = AuthService(
        user_store=SQLAlchemyUserStore(),
        legacy=build_legacy_verifier(app.config),
        whitelist=whitelist,
        secret=app.config["JWT_SECRET_KEY"],
        token_cfg=cfg,
    )

    reaper = None
    if app.config.get("WHITELIST_REAPER_ENABLED", False):
        reaper = WhitelistReaper(whitelist, cfg.refresh_expires)
        reaper.start()

    components = AuthComponents(service, whitelist, reaper)
    app.extensions[EXTENSION_KEY] = components
    atexit.register(components.shutdown)
    return components


def get_components(app: Flask | None = None) -> AuthComponents:
    target = app or current_app
    try:
        return target.extensions[EXTENSION_KEY]
    except KeyError as exc:
        raise RuntimeError("Auth components are not initialized. Call init_app() first.") from exc


def get_auth_service() -> AuthService:
    """Return the :class:`AuthService` bound to the current application."""
    return get_components().service
