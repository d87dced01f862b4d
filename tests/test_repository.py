import httpx
import pytest
from postgrest.exceptions import APIError

from app.common.errors import StoreUnavailable
from app.DB.repository import SupabaseRepository, is_unique_violation
from app.DB.supabase import Store

pytestmark = pytest.mark.anyio("asyncio")


class WidgetRepository(SupabaseRepository):
    table_name = "widgets"


def test_unique_violation_detection():
    exc = APIError({"message": 'duplicate key value violates unique constraint "uq_x"', "code": "23505"})
    assert is_unique_violation(exc)
    assert is_unique_violation(exc, "uq_x")
    assert not is_unique_violation(APIError({"message": "permission denied", "code": "42501"}))
    assert not is_unique_violation(ValueError("duplicate key"))


async def test_crud_helpers(db):
    repo = WidgetRepository(db, timeout=1)
    await repo.insert({"id": "w1", "name": "one"})
    await repo.insert({"id": "w2", "name": "two"})

    assert (await repo.get_by_id("w1"))["name"] == "one"
    assert await repo.get_by_id("missing") is None
    assert {r["id"] for r in await repo.list_by_ids(["w2", "w1", None, "w1"])} == {"w1", "w2"}
    assert await repo.list_by_ids([]) == []
    assert (await repo.update("w2", {"name": "deux"}))["name"] == "deux"
    assert await repo.update("missing", {"name": "x"}) is None


async def test_transport_failure_becomes_store_unavailable(db):
    db.fail_with = httpx.ConnectError("refused")
    with pytest.raises(StoreUnavailable) as exc:
        await WidgetRepository(db).get_by_id("w1")
    assert exc.value.details == {"reason": "ConnectError"}


async def test_query_errors_propagate(db):
    db.fail_with = APIError({"message": "bad filter", "code": "PGRST100"})
    with pytest.raises(APIError):
        await WidgetRepository(db).get_by_id("w1")


async def test_closed_store_refuses_client():
    store = Store("", "")
    assert not store.is_open
    with pytest.raises(StoreUnavailable):
        store.client
    with pytest.raises(RuntimeError):
        await store.open()


async def test_store_close_releases_client(db):
    store = Store.with_client(db)
    assert store.is_open
    await store.close()
    assert not store.is_open
