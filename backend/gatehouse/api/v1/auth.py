"""Token endpoints: login with credentials, refresh with a refresh token."""

from __future__ import annotations

from flask import Blueprint

from gatehouse.api.deps import json_body, json_response, no_store, timing
from gatehouse.core.auth import get_auth_service
from gatehouse.schemas import GrantSchema, LoginSchema, RefreshSchema
from gatehouse.services._shared.errors import ServiceError
from gatehouse.services.auth import LoginIn, RefreshIn

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
grant_schema = GrantSchema()


@bp.post("/login")
@timing
def login():
    """Exchange username/password for an access and refresh token pair.

    401 for wrong credentials (local or legacy), 500 for any internal failure.
    """

    data = login_schema.load(json_body())
    service = get_auth_service()
    try:
        grant = service.login(LoginIn(username=data["username"], password=data["password"]))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return no_store(json_response(grant_schema.dump(grant)))


@bp.post("/refresh")
@timing
def refresh():
    """Exchange a whitelisted refresh token for a new token pair.

    Every kind of rejected token answers the same 401.
    """

    data = refresh_schema.load(json_body())
    service = get_auth_service()
    try:
        grant = service.refresh(RefreshIn(refresh_token=data["refresh_token"]))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return no_store(json_response(grant_schema.dump(grant)))
