# gatehouse/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Login name (local or legacy).
    :type username: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Signed refresh token.
    :type refresh_token: str
    """

    refresh_token: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class Grant:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Signed access token.
    :type access_token: str
    :param refresh_token: Signed refresh token.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param issuer: Value of the ``iss`` claim; refresh tokens must match it.
    :type issuer: str
    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime (also the whitelist max age).
    :type refresh_expires: timedelta
    :param single_use_refresh: Rotate the presented refresh token out of the
        whitelist on every successful refresh.
    :type single_use_refresh: bool
    """

    issuer: str
    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(hours=72)
    single_use_refresh: bool = False
