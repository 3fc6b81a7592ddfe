import logging
from typing import List

from fastapi import APIRouter, Depends, status

from app.auth import get_current_active_user
from app.data.session_manager import SessionManager, get_session_manager
from app.models.user import User
from app.schemas.session import JoinSessionRequest, SessionResponse, SessionSummary
from app.services.voting_manager import VotingManager, get_voting_manager
from app.utils.websocket_manager import websocket_manager

router = APIRouter(prefix="/api/sessions", tags=["sessions"])
logger = logging.getLogger(__name__)


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    session = session_manager.create_session(current_user)
    return SessionResponse.model_validate(session)


@router.get("", response_model=List[SessionSummary])
async def list_my_sessions(
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
) -> List[SessionSummary]:
    return [
        SessionSummary.model_validate(session)
        for session in session_manager.list_sessions_for_user(current_user)
    ]


@router.post("/join", response_model=SessionResponse)
async def join_session(
    payload: JoinSessionRequest,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    session, joined = session_manager.join_session_by_code(payload.code, current_user)
    if joined:
        await websocket_manager.publish(
            session.session_id,
            "participant_joined",
            {
                "sessionId": session.session_id,
                "userId": current_user.user_id,
                "displayName": current_user.display_name,
                "participantCount": len(session.participants),
            },
        )
    return SessionResponse.model_validate(session)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    session = session_manager.require_participant(session_id, current_user)
    return SessionResponse.model_validate(session)


@router.post("/{session_id}/start", response_model=SessionResponse)
async def start_session(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    voting_manager: VotingManager = Depends(get_voting_manager),
) -> SessionResponse:
    """Close the lobby and open idea collection."""
    session = session_manager.start_session(session_id, current_user)
    await websocket_manager.publish(
        session.session_id,
        "session_started",
        voting_manager.session_snapshot(session),
    )
    return SessionResponse.model_validate(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
) -> None:
    session_manager.delete_session(session_id, current_user)
