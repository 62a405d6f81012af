# gatehouse/services/auth/service.py
from __future__ import annotations

import logging
from datetime import UTC, datetime

from gatehouse.security.passwords import hash_password, verify_password
from gatehouse.security.tokens import (
    Token,
    TokenDecodeError,
    TokenSigningError,
    decode,
    encode,
    new_csrf_token,
    new_identifier,
)
from gatehouse.services._shared.base import BaseService, ServiceContext
from gatehouse.services._shared.errors import (
    ConflictError,
    InternalError,
    InvalidTokenError,
    NotFoundError,
    ServiceError,
    WrongCredentialsError,
)
from gatehouse.services._shared.ports import (
    LegacyError,
    LegacyUserNotFound,
    LegacyVerifier,
    LegacyWrongCredentials,
    UserRecord,
    UserStore,
    Whitelist,
)

# DTOs
from gatehouse.services.auth.dto import AuthTokenConfig, Grant, LoginIn, RefreshIn

log = logging.getLogger(__name__)


def _internal(action: str, exc: Exception) -> InternalError:
    """Log the real cause and return the opaque error handed to callers."""
    log.error("%s failed: %s", action, exc, exc_info=exc)
    return InternalError(f"{action} failed")


class AuthService(BaseService):
    """
    Authentication lifecycle service (login / refresh).

    Local users are checked first; unknown users are verified against the
    legacy system and migrated on first success. Refresh tokens are only
    honoured while whitelisted.

    The service holds no mutable state of its own, so one instance is shared
    by all request threads.
    """

    def __init__(
        self,
        *,
        user_store: UserStore,
        legacy: LegacyVerifier,
        whitelist: Whitelist,
        secret: str,
        token_cfg: AuthTokenConfig,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param user_store: Local user persistence.
        :param legacy: Legacy credential system used for lazy migration.
        :param whitelist: Registry of outstanding refresh tokens.
        :param secret: Shared HMAC signing secret.
        :param token_cfg: Issuer and token lifetimes.
        """
        super().__init__(ctx=ctx)
        self.users = user_store
        self.legacy = legacy
        self.whitelist = whitelist
        self.secret = secret
        self.cfg = token_cfg

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> Grant:
        """
        Authenticate credentials and issue a fresh grant.

        :param dto: Login input.
        :returns: Access/Refresh token pair.
        :raises WrongCredentialsError: If credentials are invalid.
        :raises InternalError: On storage, signing or legacy failures.
        """
        if not dto.username or not dto.password:
            raise WrongCredentialsError()

        user = self._find_user(dto.username)
        if user is None:
            user = self._migrate_user(dto.username, dto.password)

        # Always compared, including right after a migration.
        if not verify_password(dto.password, user.password_hash):
            raise WrongCredentialsError()

        return self._create_grant()

    def _find_user(self, username: str) -> UserRecord | None:
        try:
            return self.users.get_user(username)
        except NotFoundError:
            return None
        except ServiceError as exc:
            raise _internal("get user", exc) from exc

    def _migrate_user(self, username: str, password: str) -> UserRecord:
        """
        Verify ``username`` against the legacy system and copy it locally.

        A concurrent login may migrate the same user first; the unique name
        constraint turns that into a :class:`ConflictError`, which is fine.
        """
        try:
            self.legacy.verify(username, password)
        except (LegacyUserNotFound, LegacyWrongCredentials) as exc:
            raise WrongCredentialsError() from exc
        except LegacyError as exc:
            raise _internal("legacy verify", exc) from exc

        try:
            profile = self.legacy.get_profile(username)
        except LegacyError as exc:
            raise _internal("user migration", exc) from exc

        record = UserRecord(
            name=username,
            password_hash=hash_password(password),
            email=profile.email,
            user_class=profile.user_class,
            admin=profile.admin,
            joined_at=profile.join_date,
        )
        try:
            self.users.create_user(record)
            log.info("auth.migrated user=%s", username)
        except ConflictError:
            log.info("auth.migration_race user=%s", username)
        except ServiceError as exc:
            raise _internal("user migration", exc) from exc

        try:
            return self.users.get_user(username)
        except ServiceError as exc:
            raise _internal("get migrated user", exc) from exc

    # ------------------------------------------------------------------ #
    # Refresh
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> Grant:
        """
        Exchange a whitelisted refresh token for a new grant.

        Security
        --------
        - Any decoding problem, a whitelist miss or a policy mismatch is
          reported as the same :class:`InvalidTokenError`.
        - With ``single_use_refresh`` the presented token is removed in the
          same transaction that whitelists its successor.
        """
        if not dto.refresh_token:
            raise InvalidTokenError()

        try:
            token, valid = decode(dto.refresh_token, self.secret)
        except TokenDecodeError as exc:
            log.warning("auth.refresh_undecodable: %s", exc)
            raise InvalidTokenError() from exc
        if not valid or not token.id:
            raise InvalidTokenError()

        try:
            stored = self.whitelist.get_token(token.id)
        except NotFoundError as exc:
            raise InvalidTokenError() from exc
        except ServiceError as exc:
            raise _internal("whitelist lookup", exc) from exc

        if not self._verify_token(token, stored):
            raise InvalidTokenError()

        return self._create_grant(replaces=token.id if self.cfg.single_use_refresh else None)

    def _verify_token(self, token: Token, stored: Token) -> bool:
        """Check policy (issuer, lifetime) and the whitelisted copy field by field."""
        if token.issuer != self.cfg.issuer:
            return False
        if token.duration != self.cfg.refresh_expires:
            return False
        return token.same_claims(stored)

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def _create_grant(self, *, replaces: str | None = None) -> Grant:
        """
        Mint an access/refresh pair sharing one subject and CSRF value.

        Both tokens are signed before the refresh token is whitelisted, and
        nothing is returned unless every step succeeded.

        :param replaces: Whitelisted refresh id to rotate out atomically.
        """
        csrf = new_csrf_token()
        subject = new_identifier()
        now = datetime.now(UTC)

        access = Token.new(
            issuer=self.cfg.issuer,
            subject=subject,
            lifetime=self.cfg.access_expires,
            csrf=csrf,
            now=now,
        )
        refresh = Token.new(
            issuer=self.cfg.issuer,
            subject=subject,
            lifetime=self.cfg.refresh_expires,
            csrf=csrf,
            token_id=new_identifier(),
            now=now,
        )

        try:
            signed_access = encode(access, self.secret)
            signed_refresh = encode(refresh, self.secret)
        except TokenSigningError as exc:
            raise _internal("token signing", exc) from exc

        try:
            if replaces is None:
                self.whitelist.put_token(refresh.id, refresh)
            else:
                self.whitelist.rotate_token(replaces, refresh.id, refresh)
        except NotFoundError as exc:
            # Lost a race against another refresh of the same token.
            raise InvalidTokenError() from exc
        except ServiceError as exc:
            raise _internal("whitelist put", exc) from exc

        return Grant(access_token=signed_access, refresh_token=signed_refresh)
