import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth import get_current_active_user
from app.config.loader import get_idea_limits
from app.data.ideas_manager import IdeasManager, idea_quota_for_group
from app.data.session_manager import SessionManager, get_session_manager
from app.database import get_db
from app.models.user import User
from app.schemas.idea import IdeaCreate, IdeaResponse, IdeaSubmissionResponse
from app.services.session_lifecycle import SessionStatus, coerce_status
from app.services.voting_manager import VotingManager
from app.utils.websocket_manager import websocket_manager

ideas_router = APIRouter(prefix="/api/sessions/{session_id}/ideas", tags=["ideas"])
logger = logging.getLogger(__name__)


@ideas_router.post(
    "", response_model=IdeaSubmissionResponse, status_code=status.HTTP_201_CREATED
)
async def submit_idea(
    session_id: str,
    payload: IdeaCreate,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    db: Session = Depends(get_db),
) -> IdeaSubmissionResponse:
    """Capture one idea while the session is collecting ideas."""
    session = session_manager.require_participant(session_id, current_user)
    if coerce_status(session.status) != SessionStatus.COLLECTING_IDEAS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Ideas can only be submitted while the session is collecting ideas.",
        )

    content = (payload.content or "").strip()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Idea content cannot be empty.",
        )
    max_chars = get_idea_limits()["idea_character_limit"]
    if len(content) > max_chars:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Ideas are limited to {max_chars} characters.",
        )

    ideas_manager = IdeasManager()
    quota = idea_quota_for_group(len(session.participants))
    submitted = ideas_manager.count_ideas_for_user(
        db, session.session_id, current_user.user_id
    )
    if submitted >= quota:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"You can submit up to {quota} ideas in this session.",
        )

    idea = ideas_manager.add_idea(
        db, session.session_id, current_user.user_id, content
    )
    response = IdeaSubmissionResponse.model_validate(idea).model_copy(
        update={"ideas_remaining": quota - submitted - 1}
    )
    await websocket_manager.publish(
        session.session_id,
        "idea_submitted",
        {
            "sessionId": session.session_id,
            "ideaId": idea.id,
            "authorId": idea.author_id,
            "ideaCount": len(ideas_manager.get_ideas_for_session(db, session.session_id)),
        },
    )
    return response


@ideas_router.get("", response_model=List[IdeaResponse])
async def list_ideas(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    db: Session = Depends(get_db),
) -> List[IdeaResponse]:
    session = session_manager.require_participant(session_id, current_user)
    ideas = IdeasManager().get_ideas_for_session(db, session.session_id)
    return [IdeaResponse.model_validate(idea) for idea in ideas]


@ideas_router.get("/ballot", response_model=List[IdeaResponse])
async def list_ballot_ideas(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    db: Session = Depends(get_db),
) -> List[IdeaResponse]:
    """Ideas on the ballot of the current round."""
    session = session_manager.require_participant(session_id, current_user)
    ideas = IdeasManager().get_ideas_by_ids(
        db, session.session_id, VotingManager.ballot_idea_ids(session)
    )
    return [IdeaResponse.model_validate(idea) for idea in ideas]


@ideas_router.get("/winners", response_model=List[IdeaResponse])
async def list_winners(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_manager: SessionManager = Depends(get_session_manager),
    db: Session = Depends(get_db),
) -> List[IdeaResponse]:
    session = session_manager.require_participant(session_id, current_user)
    if coerce_status(session.status) != SessionStatus.FINISHED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Winners are only available once the session has finished.",
        )
    ideas = IdeasManager().get_ideas_by_ids(
        db, session.session_id, [int(i) for i in session.winner_idea_ids or []]
    )
    return [IdeaResponse.model_validate(idea) for idea in ideas]
