"""Marshmallow schemas for the token endpoints."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class LoginSchema(Schema):
    """Input payload for ``POST /auth/login``.

    Empty strings pass validation on purpose: they are answered with the same
    401 as any other wrong credential, not with a 422.
    """

    class Meta:
        unknown = EXCLUDE

    username = fields.String(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, validate=validate.Length(max=1024))


class RefreshSchema(Schema):
    """Input payload for ``POST /auth/refresh``."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(required=True, validate=validate.Length(max=8192))


class GrantSchema(Schema):
    """Response payload with both signed tokens."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
