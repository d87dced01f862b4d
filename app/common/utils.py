from typing import Any, Optional
from datetime import datetime, timezone


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format datetime for API responses and storage"""
    return ensure_aware(dt).isoformat()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp (ISO string or datetime) into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_aware(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def clean_batch(value: Optional[str]) -> str:
    """Batch labels are trimmed free text; case is preserved."""
    return (value or "").strip()


def full_name(first: Optional[str], last: Optional[str]) -> str:
    return " ".join(part for part in ((first or "").strip(), (last or "").strip()) if part)
