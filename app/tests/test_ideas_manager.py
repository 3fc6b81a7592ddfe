import pytest
from sqlalchemy.orm import Session

from app.data.ideas_manager import IdeasManager, idea_quota_for_group
from app.data.session_manager import SessionManager
from app.data.user_manager import UserManager


@pytest.fixture
def ideas_manager_instance():
    return IdeasManager()


@pytest.fixture
def session_with_owner(db_session: Session, user_manager: UserManager):
    owner = user_manager.add_user("Test User")
    session = SessionManager(db=db_session).create_session(owner)
    return session, owner


@pytest.mark.parametrize(
    "participants, quota",
    [(1, 4), (2, 4), (3, 3), (4, 3), (5, 2), (12, 2)],
)
def test_idea_quota_for_group(participants, quota):
    assert idea_quota_for_group(participants) == quota


def test_add_idea_trims_content(
    ideas_manager_instance: IdeasManager, db_session: Session, session_with_owner
):
    session, owner = session_with_owner

    idea = ideas_manager_instance.add_idea(
        db_session, session.session_id, owner.user_id, "  A revolutionary idea!  "
    )

    assert idea.id is not None
    assert idea.content == "A revolutionary idea!"
    assert idea.author_id == owner.user_id
    assert idea.session_id == session.session_id


def test_ideas_listed_in_submission_order_and_counted_per_user(
    ideas_manager_instance: IdeasManager,
    db_session: Session,
    session_with_owner,
    user_manager: UserManager,
):
    session, owner = session_with_owner
    other = user_manager.add_user("Other")
    for author, text in ((owner, "one"), (other, "two"), (owner, "three")):
        ideas_manager_instance.add_idea(db_session, session.session_id, author.user_id, text)

    ideas = ideas_manager_instance.get_ideas_for_session(db_session, session.session_id)

    assert [i.content for i in ideas] == ["one", "two", "three"]
    assert ideas_manager_instance.count_ideas_for_user(db_session, session.session_id, owner.user_id) == 2
    assert ideas_manager_instance.count_ideas_for_user(db_session, session.session_id, other.user_id) == 1


def test_get_ideas_by_ids_keeps_requested_order_and_scope(
    ideas_manager_instance: IdeasManager,
    db_session: Session,
    session_with_owner,
    user_manager: UserManager,
):
    session, owner = session_with_owner
    first = ideas_manager_instance.add_idea(db_session, session.session_id, owner.user_id, "first")
    second = ideas_manager_instance.add_idea(db_session, session.session_id, owner.user_id, "second")
    elsewhere = SessionManager(db=db_session).create_session(owner)
    foreign = ideas_manager_instance.add_idea(db_session, elsewhere.session_id, owner.user_id, "foreign")

    ideas = ideas_manager_instance.get_ideas_by_ids(
        db_session, session.session_id, [second.id, foreign.id, first.id]
    )

    assert [i.id for i in ideas] == [second.id, first.id]
    assert ideas_manager_instance.get_ideas_by_ids(db_session, session.session_id, []) == []
