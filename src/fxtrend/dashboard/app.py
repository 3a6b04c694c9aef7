"""FastAPI dashboard application factory exposing the viewer over HTTP."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from fxtrend.dashboard.routes import api


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the dashboard application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  main.py uses it to build the viewer and store it on
                  ``app.state.viewer``.

    Returns:
        Configured FastAPI application with the JSON/PNG API mounted at /api.
    """
    app = FastAPI(
        title="FX Trend Viewer",
        lifespan=lifespan,
    )
    app.include_router(api.router, prefix="/api")
    return app
