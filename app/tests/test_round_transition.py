import pytest

from app.services.resolution_engine import Finalize, NewRound, ResolutionError
from app.services.round_transition import (
    RoundState,
    apply_outcome,
    next_round_state,
    votes_per_ballot,
)
from app.services.session_lifecycle import SessionStateError, SessionStatus
from app.services.vote_tally import IdeaSnapshot


def _idea(idea_id: str, votes: int = 0) -> IdeaSnapshot:
    return IdeaSnapshot(idea_id=idea_id, content=idea_id.upper(), author_id=None, vote_count=votes)


@pytest.fixture
def voting_state() -> RoundState:
    return RoundState(
        round=1,
        status=SessionStatus.VOTING,
        candidate_ideas=tuple(_idea(name) for name in "abcde"),
        ballot={"USR-ALICEXX-001": ("a", "b", "c")},
    )


def test_next_round_state_opens_a_clean_revote(voting_state):
    outcome = NewRound(locked=(_idea("a", 4),), candidates=(_idea("b", 2), _idea("c", 2), _idea("d", 2)))

    state = next_round_state(voting_state, outcome)

    assert state.round == 2
    assert state.status == SessionStatus.REVOTING
    assert state.locked_ideas == outcome.locked
    assert state.candidate_ideas == outcome.candidates
    assert dict(state.ballot) == {}
    assert state.open_seats == 2


def test_next_round_state_leaves_the_input_untouched(voting_state):
    next_round_state(voting_state, NewRound(locked=(), candidates=(_idea("a"), _idea("b"))))

    assert voting_state.round == 1
    assert voting_state.ballot == {"USR-ALICEXX-001": ("a", "b", "c")}


def test_round_state_payload(voting_state):
    outcome = NewRound(locked=(_idea("a", 4),), candidates=(_idea("b", 2), _idea("c", 2)))

    payload = next_round_state(voting_state, outcome).to_payload()

    assert payload == {
        "round": 2,
        "status": "REVOTING",
        "lockedIdeas": [_idea("a", 4).to_payload()],
        "candidateIdeas": [_idea("b", 2).to_payload(), _idea("c", 2).to_payload()],
        "ballot": {},
    }


def test_apply_outcome_finalize_finishes_the_session(voting_state):
    winners = (_idea("a", 3), _idea("b", 2), _idea("c", 1))

    state = apply_outcome(voting_state, Finalize(winners=winners))

    assert state.status == SessionStatus.FINISHED
    assert state.winners == winners
    assert state.candidate_ideas == ()
    assert state.to_payload()["winners"] == [w.to_payload() for w in winners]


def test_apply_outcome_new_round_moves_to_revoting(voting_state):
    state = apply_outcome(
        voting_state, NewRound(locked=(), candidates=tuple(_idea(n) for n in "abcd"))
    )

    assert state.status == SessionStatus.REVOTING
    assert state.round == 2


def test_apply_outcome_revote_can_follow_a_revote(voting_state):
    revote = apply_outcome(voting_state, NewRound(locked=(), candidates=(_idea("a"), _idea("b"), _idea("c"), _idea("d"))))

    again = apply_outcome(revote, NewRound(locked=(), candidates=revote.candidate_ideas))

    assert again.status == SessionStatus.REVOTING
    assert again.round == 3


def test_apply_outcome_error_keeps_the_round_open(voting_state):
    state = apply_outcome(voting_state, ResolutionError(reason="no ideas to resolve"))

    assert state is voting_state


def test_apply_outcome_rejects_moves_out_of_finished():
    finished = RoundState(round=2, status=SessionStatus.FINISHED)

    with pytest.raises(SessionStateError):
        apply_outcome(finished, NewRound(locked=(), candidates=(_idea("a"), _idea("b"))))


def test_apply_outcome_rejects_unknown_outcomes(voting_state):
    with pytest.raises(TypeError):
        apply_outcome(voting_state, {"action": "FINALIZE"})


@pytest.mark.parametrize(
    "candidates, open_seats, expected",
    [
        (10, 3, 3),
        (4, 3, 3),
        (3, 3, 2),
        (2, 3, 1),
        (1, 3, 0),
        (0, 3, 0),
        (4, 2, 2),
        (3, 1, 1),
        (2, 1, 1),
    ],
)
def test_votes_per_ballot(candidates, open_seats, expected):
    assert votes_per_ballot(candidates, open_seats) == expected
