"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from gatehouse.api.deps import json_response, timing
from gatehouse.core.auth import get_components
from gatehouse.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Report database reachability and whether the reaper thread is alive."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    reaper = get_components().reaper
    if reaper is None:
        reaper_status = "disabled"
    else:
        reaper_status = "running" if reaper.running else "stopped"

    payload = {
        "status": "ok",
        "db": db_status,
        "reaper": reaper_status,
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload)
