"""Clock injected into services so a whole request shares one ``now``."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from app.common.utils import ensure_aware

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


def fixed_clock(instant: datetime) -> Clock:
    frozen = ensure_aware(instant)

    def _clock() -> datetime:
        return frozen

    return _clock


__all__ = ["Clock", "system_clock", "fixed_clock"]
