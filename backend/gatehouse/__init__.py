"""Expose the application factory at package level.

``from gatehouse import create_app`` builds the auth API; ``flask --app
gatehouse`` finds it automatically.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
