"""RFC 7807 (problem+json) error handling for the auth API.

Clients only ever see a status, a stable ``code``, a safe ``detail`` and the
request id. Causes (legacy outages, storage errors, tracebacks) go to the log.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from gatehouse.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

# Stable machine codes for the statuses this API produces.
STATUS_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
    415: "unsupported_media_type",
    422: "validation_error",
    500: "internal_server_error",
    503: "service_unavailable",
}


def code_for(status: int) -> str:
    return STATUS_CODES.get(status, "error")


class APIError(Exception):
    """
    Error raised by handlers and answered as problem+json.

    :param message: Client-safe description, sent as ``detail``.
    :param status_code: HTTP status (default 400).
    :param code: Machine-readable code; derived from the status when omitted.
    :param details: Optional structured, client-safe payload.
    """

    def __init__(
        self,
        message: str,
        status_code: int = HTTPStatus.BAD_REQUEST,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code or code_for(self.status_code)
        self.details = details or {}


class Unauthorized(APIError):
    """401 for wrong credentials and every kind of rejected token."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED)


def problem(
    status: int,
    message: str,
    *,
    code: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the Problem Details body for the current request."""
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": int(status),
        "detail": message,
        "instance": request.path,
        "code": code or code_for(status),
    }
    if details:
        body["details"] = details
    body["request_id"] = ensure_request_id()
    return body


def _respond(body: dict[str, Any], *, exc_info: bool = False) -> tuple[Response, int]:
    status = body["status"]
    level = logging.ERROR if status >= 500 else logging.WARNING
    log.log(
        level,
        "problem status=%s code=%s detail=%s request_id=%s",
        status,
        body["code"],
        body["detail"],
        body["request_id"],
        exc_info=exc_info,
    )
    resp = jsonify(body)
    resp.mimetype = PROBLEM_MIMETYPE
    return resp, status


def init_app(app: Flask) -> None:
    """
    Attach problem+json handlers to the Flask app.

    Notes
    -----
    - ``APIError`` and Werkzeug HTTP errors keep their status.
    - Marshmallow validation errors answer 422 with field messages.
    - Database connectivity errors answer 503, anything else 500; both are
      logged with the traceback and answered with a generic detail.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        return _respond(
            problem(err.status_code, err.message, code=err.code, details=err.details or None)
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or HTTPStatus(status).phrase).strip()
        return _respond(problem(status, message))

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return _respond(
            problem(
                HTTPStatus.UNPROCESSABLE_ENTITY,
                "Validation failed",
                details={"errors": err.messages},
            )
        )

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        return _respond(
            problem(HTTPStatus.SERVICE_UNAVAILABLE, "Service temporarily unavailable"),
            exc_info=True,
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        return _respond(problem(HTTPStatus.INTERNAL_SERVER_ERROR, "Unexpected error"), exc_info=True)
