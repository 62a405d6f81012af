from .dto import AuthTokenConfig, Grant, LoginIn, RefreshIn
from .reaper import WhitelistReaper
from .service import AuthService

__all__ = [
    "AuthService",
    "AuthTokenConfig",
    "Grant",
    "LoginIn",
    "RefreshIn",
    "WhitelistReaper",
]
