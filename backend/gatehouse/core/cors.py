"""CORS policy for the auth endpoints."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS


def init_app(app: Flask) -> None:
    """Allow browser clients to call ``/api/*``.

    ``CORS_ORIGINS`` is a comma-separated list; blank or ``"*"`` admits any
    origin without credentials, which is the default for the token endpoints
    since they carry no cookies.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    wildcard = len(origins) == 0 or origins == ["*"]

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID", "X-Correlation-ID"],
        supports_credentials=not wildcard,
        send_wildcard=wildcard,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
