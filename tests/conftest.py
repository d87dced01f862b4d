import sys
import os
from datetime import datetime, timezone

import pytest

# Ensure repo root on sys.path for imports like `app...`
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fakesupabase import FakeSupabase  # noqa: E402
from factories import INSTRUCTOR, OTHER_INSTRUCTOR, STUDENT_A, STUDENT_B, user_row  # noqa: E402

from app.DB.supabase import Store  # noqa: E402

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db():
    return FakeSupabase(
        {"users": [user_row(u) for u in (INSTRUCTOR, OTHER_INSTRUCTOR, STUDENT_A, STUDENT_B)]}
    )


@pytest.fixture
def store(db):
    return Store.with_client(db, timeout_seconds=1)
