# gatehouse/services/_shared/base.py
from __future__ import annotations

from dataclasses import dataclass

from gatehouse.core import errors as api_errors
from gatehouse.services._shared.errors import (
    InternalError,
    InvalidTokenError,
    ServiceError,
    WrongCredentialsError,
)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data.

    :param request_id: Correlation id for logging/tracing.
    """

    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context (tracing).
        :type ctx: ServiceContext | None
        """
        self.ctx = ctx or ServiceContext()

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        Only the public message travels to the client; causes stay in logs.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, WrongCredentialsError):
            # → 401 Unauthorized
            return api_errors.Unauthorized("wrong username or password")

        if isinstance(exc, InvalidTokenError):
            # → 401 Unauthorized
            return api_errors.Unauthorized("invalid token")

        if isinstance(exc, InternalError):
            # → 500, message only
            return api_errors.APIError(
                message=str(exc),
                status_code=500,
                code="internal_server_error",
            )

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
