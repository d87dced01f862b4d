"""Course tracker backend.

The FastAPI application is exposed as ``app`` lazily so that scripts needing
only configuration or models (Alembic) can import without building the app."""

from __future__ import annotations

__all__ = ["app"]


def __getattr__(name: str):
    if name == "app":
        from .main import app as fastapi_app
        return fastapi_app
    raise AttributeError(f"module {__name__} has no attribute {name!r}")
