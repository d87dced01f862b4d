"""ORM table declarations. Runtime access goes through Supabase; these feed Alembic."""

from __future__ import annotations

import importlib
import logging
import pkgutil
from pathlib import Path

from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def discover_feature_models() -> int:
    """Import every ``app.features.*.models`` module so ``Base.metadata`` is complete."""
    root = Path(__file__).resolve().parent.parent  # app/
    features_dir = root / "features"
    if not features_dir.is_dir():
        logger.warning("No features dir: %s", features_dir)
        return 0

    discovered = 0
    for pkg in pkgutil.walk_packages([str(features_dir)], prefix="app.features."):
        if not pkg.name.endswith(".models"):
            continue
        importlib.import_module(pkg.name)
        discovered += 1
    logger.debug("Discovered %d model modules", discovered)
    return discovered


def list_models() -> list[str]:
    return sorted(
        mapper.class_.__name__ for mapper in Base.registry.mappers if hasattr(mapper.class_, "__table__")
    )


__all__ = ["Base", "discover_feature_models", "list_models"]
