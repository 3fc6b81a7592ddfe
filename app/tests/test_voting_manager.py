import pytest
from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.data.ideas_manager import IdeasManager
from app.data.session_manager import SessionManager
from app.data.user_manager import UserManager
from app.services.resolution_engine import Finalize, NewRound, ResolutionError
from app.services.session_lifecycle import SessionStatus
from app.services.voting_manager import VotingManager


@pytest.fixture
def voting_manager(db_session: Session) -> VotingManager:
    return VotingManager(db=db_session)


@pytest.fixture
def voting_setup(db_session: Session, user_manager: UserManager):
    """Two participants, four ideas, round one open."""
    sessions = SessionManager(db=db_session)
    owner = user_manager.add_user("Owner")
    guest = user_manager.add_user("Guest")
    session = sessions.create_session(owner)
    sessions.join_session_by_code(session.code, guest)
    sessions.start_session(session.session_id, owner)
    ideas_manager = IdeasManager()
    ideas = [
        ideas_manager.add_idea(db_session, session.session_id, author.user_id, text)
        for author, text in (
            (owner, "Idea one"),
            (guest, "Idea two"),
            (owner, "Idea three"),
            (guest, "Idea four"),
        )
    ]
    session = sessions.start_voting(session.session_id, owner)
    return session, owner, guest, [idea.id for idea in ideas]


def test_round_one_ballot_is_every_idea(voting_manager, voting_setup):
    session, _, _, ids = voting_setup

    state = voting_manager.round_state(session)

    assert state.round == 1
    assert state.status == SessionStatus.VOTING
    assert [i.idea_id for i in state.candidate_ideas] == ids
    assert all(i.vote_count == 0 for i in state.candidate_ideas)
    assert session.votes_per_ballot == 3


def test_first_ballot_does_not_close_the_round(voting_manager, voting_setup):
    session, owner, _, ids = voting_setup

    round_number, closed = voting_manager.cast_ballot(session, owner, ids[:3])

    assert round_number == 1
    assert closed is None
    status = voting_manager.vote_status(session)
    assert status["ballots_cast"] == 1
    assert status["voter_ids"] == [owner.user_id]
    assert status["complete"] is False
    assert voting_manager.has_voted(session, owner)
    assert voting_manager.user_ballot(session, owner) == sorted(ids[:3])


def test_last_ballot_finalizes_a_clear_result(voting_manager, voting_setup):
    session, owner, guest, ids = voting_setup
    voting_manager.cast_ballot(session, owner, ids[:3])

    _, closed = voting_manager.cast_ballot(session, guest, ids[:3])

    assert closed is not None and closed.changed
    assert isinstance(closed.outcome, Finalize)
    assert session.status == SessionStatus.FINISHED.value
    assert session.winner_idea_ids == ids[:3]
    assert session.finished_at is not None
    winners = voting_manager.round_state(session).winners
    assert [(w.idea_id, w.vote_count) for w in winners] == [(ids[0], 2), (ids[1], 2), (ids[2], 2)]


def test_tie_opens_a_revote_with_locked_leaders(voting_manager, voting_setup):
    session, owner, guest, ids = voting_setup
    voting_manager.cast_ballot(session, owner, [ids[0], ids[1], ids[2]])

    _, closed = voting_manager.cast_ballot(session, guest, [ids[0], ids[1], ids[3]])

    assert isinstance(closed.outcome, NewRound)
    assert session.status == SessionStatus.REVOTING.value
    assert session.current_round == 2
    assert session.locked_idea_ids == [ids[0], ids[1]]
    assert session.candidate_idea_ids == [ids[2], ids[3]]
    assert session.votes_per_ballot == 1
    assert session.ballot_history["2"] == [ids[2], ids[3]]

    state = voting_manager.round_state(session)
    assert [(i.idea_id, i.vote_count) for i in state.locked_ideas] == [(ids[0], 2), (ids[1], 2)]
    assert dict(state.ballot) == {}


def test_revote_finalizes_with_locked_ideas_first(voting_manager, voting_setup):
    session, owner, guest, ids = voting_setup
    voting_manager.cast_ballot(session, owner, [ids[0], ids[1], ids[2]])
    voting_manager.cast_ballot(session, guest, [ids[0], ids[1], ids[3]])

    voting_manager.cast_ballot(session, owner, [ids[3]])
    _, closed = voting_manager.cast_ballot(session, guest, [ids[3]])

    assert isinstance(closed.outcome, Finalize)
    assert session.winner_idea_ids == [ids[0], ids[1], ids[3]]
    assert session.status == SessionStatus.FINISHED.value


def test_repeated_tie_stays_in_revoting(voting_manager, voting_setup):
    session, owner, guest, ids = voting_setup
    voting_manager.cast_ballot(session, owner, [ids[0], ids[1], ids[2]])
    voting_manager.cast_ballot(session, guest, [ids[0], ids[1], ids[3]])

    voting_manager.cast_ballot(session, owner, [ids[2]])
    _, closed = voting_manager.cast_ballot(session, guest, [ids[3]])

    assert isinstance(closed.outcome, NewRound)
    assert session.current_round == 3
    assert session.status == SessionStatus.REVOTING.value
    assert session.locked_idea_ids == [ids[0], ids[1]]


def test_ballot_validation(voting_manager, voting_setup, user_manager):
    session, owner, guest, ids = voting_setup

    with pytest.raises(HTTPException) as wrong_size:
        voting_manager.cast_ballot(session, owner, ids[:2])
    assert wrong_size.value.status_code == 400

    with pytest.raises(HTTPException) as repeated:
        voting_manager.cast_ballot(session, owner, [ids[0], ids[0], ids[1]])
    assert repeated.value.status_code == 400

    with pytest.raises(HTTPException) as off_ballot:
        voting_manager.cast_ballot(session, owner, [ids[0], ids[1], 999999])
    assert off_ballot.value.status_code == 400

    outsider = user_manager.add_user("Outsider")
    with pytest.raises(HTTPException) as not_member:
        voting_manager.cast_ballot(session, outsider, ids[:3])
    assert not_member.value.status_code == 403

    voting_manager.cast_ballot(session, owner, ids[:3])
    with pytest.raises(HTTPException) as twice:
        voting_manager.cast_ballot(session, owner, ids[1:4])
    assert twice.value.status_code == 409


def test_locked_ideas_are_off_the_revote_ballot(voting_manager, voting_setup):
    session, owner, guest, ids = voting_setup
    voting_manager.cast_ballot(session, owner, [ids[0], ids[1], ids[2]])
    voting_manager.cast_ballot(session, guest, [ids[0], ids[1], ids[3]])

    with pytest.raises(HTTPException) as excinfo:
        voting_manager.cast_ballot(session, owner, [ids[0]])
    assert excinfo.value.status_code == 400


def test_close_round_is_idempotent(voting_manager, voting_setup):
    session, owner, _, ids = voting_setup
    voting_manager.cast_ballot(session, owner, ids[:3])

    first = voting_manager.close_round(session, 1)
    second = voting_manager.close_round(session, 1)

    assert first.changed is True
    assert isinstance(first.outcome, Finalize)
    assert second.changed is False
    assert second.outcome is None
    assert second.state.status == SessionStatus.FINISHED


def test_close_round_with_no_votes_is_a_full_tie(voting_manager, voting_setup):
    session, _, _, ids = voting_setup

    result = voting_manager.close_round(session, 1)

    assert isinstance(result.outcome, NewRound)
    assert [i.idea_id for i in result.outcome.candidates] == ids
    assert session.current_round == 2


def test_close_round_error_leaves_round_open(voting_manager, voting_setup, db_session):
    session, _, _, ids = voting_setup
    session.candidate_idea_ids = []
    db_session.commit()

    result = voting_manager.close_round(session, 1)

    assert isinstance(result.outcome, ResolutionError)
    assert result.changed is False
    assert session.status == SessionStatus.VOTING.value
    assert session.current_round == 1


def test_round_results_include_zero_vote_ideas(voting_manager, voting_setup):
    session, owner, guest, ids = voting_setup
    voting_manager.cast_ballot(session, owner, [ids[0], ids[1], ids[2]])
    voting_manager.cast_ballot(session, guest, [ids[0], ids[1], ids[3]])

    results = voting_manager.round_results(session, 1)
    current = voting_manager.round_results(session)

    assert [(r["idea_id"], r["votes"]) for r in results["results"]] == [
        (ids[0], 2),
        (ids[1], 2),
        (ids[2], 1),
        (ids[3], 1),
    ]
    assert current["round"] == 2
    assert [r["votes"] for r in current["results"]] == [0, 0]

    with pytest.raises(HTTPException) as excinfo:
        voting_manager.round_results(session, 7)
    assert excinfo.value.status_code == 404
