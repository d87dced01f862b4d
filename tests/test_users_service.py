import pytest

from factories import INSTRUCTOR, STUDENT_A

from app.common.errors import NotFound, ValidationFailed
from app.features.users.schemas import UserRegistration, UserUpdate
from app.features.users.service import UsersService

pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def service(store):
    return UsersService.from_store(store)


async def test_register_uses_token_email_and_trims_batch(service, now):
    user = await service.register(
        {"sub": "sub-new", "email": "new@uni.test"},
        UserRegistration(first_name=" Ada ", last_name="Lovelace", batch=" 2026-CSE-A "),
        now,
    )
    assert user.email == "new@uni.test"
    assert user.first_name == "Ada"
    assert user.batch == "2026-CSE-A"
    assert user.role == "student"


async def test_register_twice_rejected(service, now):
    with pytest.raises(ValidationFailed):
        await service.register(
            {"sub": STUDENT_A.auth_subject}, UserRegistration(first_name="A", last_name="B"), now
        )


async def test_register_needs_some_email(service, now):
    with pytest.raises(ValidationFailed):
        await service.register({"sub": "sub-x"}, UserRegistration(first_name="A", last_name="B"), now)


async def test_update_and_batch_change(service, now):
    updated = await service.update_me(STUDENT_A.id, UserUpdate(first_name="Alice"), now)
    assert updated.first_name == "Alice"

    moved = await service.set_batch(STUDENT_A.id, "2026-CSE-B", now)
    assert moved.batch == "2026-CSE-B"
    assert {s.id for s in await service.list_students("2026-CSE-B")} == {"stu-b", STUDENT_A.id}

    with pytest.raises(ValidationFailed):
        await service.set_batch(INSTRUCTOR.id, "2026-CSE-B", now)
    with pytest.raises(NotFound):
        await service.set_batch("ghost", "2026-CSE-B", now)


async def test_deactivated_student_drops_out_of_listing(service, now):
    await service.deactivate(STUDENT_A.id, now)
    assert STUDENT_A.id not in {s.id for s in await service.list_students()}


async def test_coding_profiles_merge_per_platform(service, now):
    await service.update_me(
        STUDENT_A.id, UserUpdate(coding_profiles={"leetcode": {"username": "ada", "problems_solved": 10}}), now
    )
    updated = await service.update_me(
        STUDENT_A.id,
        UserUpdate(coding_profiles={"leetcode": {"rating": 1600}, "codechef": {"username": "ada_c"}}),
        now,
    )
    leetcode = updated.coding_profiles["leetcode"]
    assert (leetcode.username, leetcode.problems_solved, leetcode.rating) == ("ada", 10, 1600)
    assert updated.coding_profiles["codechef"].username == "ada_c"
