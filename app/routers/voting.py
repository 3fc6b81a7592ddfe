import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.auth import get_current_active_user
from app.data.session_manager import SessionManager, get_session_manager
from app.models.user import User
from app.models.voting_session import VotingSession
from app.schemas.session import SessionResponse
from app.schemas.voting import (
    BallotReceipt,
    BallotRequest,
    CloseRoundResponse,
    MyVoteResponse,
    RoundResultsResponse,
    VoteStatusResponse,
)
from app.services.resolution_engine import Finalize, NewRound
from app.services.voting_manager import (
    RoundCloseResult,
    VotingManager,
    get_voting_manager,
)
from app.utils.websocket_manager import websocket_manager

voting_router = APIRouter(prefix="/api/sessions/{session_id}/voting", tags=["voting"])
logger = logging.getLogger(__name__)


async def _announce_round_close(
    session: VotingSession,
    result: RoundCloseResult,
    voting_manager: VotingManager,
) -> None:
    """Push the outcome of a closed round once it is committed."""
    if not result.changed:
        return
    if isinstance(result.outcome, NewRound):
        event_type = "new_round"
    elif isinstance(result.outcome, Finalize):
        event_type = "session_finished"
    else:
        return
    payload = voting_manager.session_snapshot(session)
    payload["outcome"] = result.outcome.to_payload()
    await websocket_manager.publish(session.session_id, event_type, payload)


@voting_router.post("/start", response_model=SessionResponse)
async def start_voting(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    voting_manager: VotingManager = Depends(get_voting_manager),
) -> SessionResponse:
    session = session_manager.start_voting(session_id, current_user)
    await websocket_manager.publish(
        session.session_id,
        "voting_started",
        voting_manager.session_snapshot(session),
    )
    return SessionResponse.model_validate(session)


@voting_router.post("/ballots", response_model=BallotReceipt)
async def cast_ballot(
    session_id: str,
    payload: BallotRequest,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    voting_manager: VotingManager = Depends(get_voting_manager),
) -> BallotReceipt:
    """
    Record the caller's picks for the current round.

    The last missing ballot closes the round, which either finishes the
    session or opens a tie-break round.
    """
    session = session_manager.require_participant(session_id, current_user)
    round_number, close_result = voting_manager.cast_ballot(
        session, current_user, payload.idea_ids
    )
    event = {
        "sessionId": session.session_id,
        "round": round_number,
        "voterId": current_user.user_id,
        "roundClosed": close_result is not None,
    }
    if close_result is None:
        event["ballotsCast"] = voting_manager.vote_status(session)["ballots_cast"]
    await websocket_manager.publish(session.session_id, "ballot_cast", event)
    if close_result is not None:
        await _announce_round_close(session, close_result, voting_manager)

    return BallotReceipt(
        session_id=session.session_id,
        round=round_number,
        idea_ids=sorted(payload.idea_ids),
        round_closed=bool(close_result and close_result.changed),
        outcome=(
            close_result.outcome.to_payload()
            if close_result and close_result.outcome
            else None
        ),
    )


@voting_router.post("/close", response_model=CloseRoundResponse)
async def close_round(
    session_id: str,
    round: Optional[int] = Query(default=None, ge=1),
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    voting_manager: VotingManager = Depends(get_voting_manager),
) -> CloseRoundResponse:
    """Close a round on demand; closing an already closed round is a no-op."""
    session = session_manager.require_owner(session_id, current_user)
    target_round = session.current_round if round is None else round
    result = voting_manager.close_round(session, target_round)
    await _announce_round_close(session, result, voting_manager)
    return CloseRoundResponse(
        session_id=session.session_id,
        closed_round=result.closed_round,
        changed=result.changed,
        outcome=result.outcome.to_payload() if result.outcome else None,
        state=result.state.to_payload(),
    )


@voting_router.get("/status", response_model=VoteStatusResponse)
async def get_vote_status(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    voting_manager: VotingManager = Depends(get_voting_manager),
) -> VoteStatusResponse:
    session = session_manager.require_participant(session_id, current_user)
    return VoteStatusResponse(**voting_manager.vote_status(session))


@voting_router.get("/results", response_model=RoundResultsResponse)
async def get_round_results(
    session_id: str,
    round: Optional[int] = Query(default=None, ge=1),
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    voting_manager: VotingManager = Depends(get_voting_manager),
) -> RoundResultsResponse:
    session = session_manager.require_participant(session_id, current_user)
    return RoundResultsResponse(**voting_manager.round_results(session, round))


@voting_router.get("/me", response_model=MyVoteResponse)
async def get_my_vote(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    voting_manager: VotingManager = Depends(get_voting_manager),
) -> MyVoteResponse:
    session = session_manager.require_participant(session_id, current_user)
    picks = voting_manager.user_ballot(session, current_user)
    return MyVoteResponse(
        session_id=session.session_id,
        round=session.current_round,
        has_voted=bool(picks),
        idea_ids=picks,
    )
