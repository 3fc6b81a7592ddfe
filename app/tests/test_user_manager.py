import pytest
from sqlalchemy.orm import Session
from app.data.user_manager import UserManager


def test_add_and_get_user(user_manager: UserManager, db_session: Session):
    added_user = user_manager.add_user("  Grace Hopper ")

    assert added_user is not None
    assert added_user.display_name == "Grace Hopper"
    assert added_user.user_id == "USR-GRACEHO-001"
    assert added_user.is_active is True
    assert added_user.last_active_at is not None

    fetched_user = user_manager.get_user_by_id(added_user.user_id)
    assert fetched_user is not None
    assert fetched_user.display_name == "Grace Hopper"


def test_same_name_gets_a_new_user(user_manager: UserManager, db_session: Session):
    first = user_manager.add_user("Bob")
    second = user_manager.add_user("Bob")

    assert first.user_id == "USR-BOBXXXX-001"
    assert second.user_id == "USR-BOBXXXX-002"
    assert user_manager.get_user_count() == 2


@pytest.mark.parametrize("name", ["", "   ", "x" * 101])
def test_add_user_rejects_bad_names(user_manager: UserManager, name: str):
    with pytest.raises(ValueError):
        user_manager.add_user(name)
    assert user_manager.get_user_count() == 0


def test_get_unknown_user(user_manager: UserManager):
    assert user_manager.get_user_by_id("USR-NOBODYX-001") is None
    assert user_manager.get_user_by_id("") is None


def test_touch_user_updates_activity(user_manager: UserManager):
    user = user_manager.add_user("Ada")
    before = user.last_active_at

    touched = user_manager.touch_user(user)

    assert touched.last_active_at >= before
