import logging
from datetime import datetime, UTC

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from app.auth import load_user_for_token
from app.data.session_manager import SessionManager
from app.database import get_db
from app.services.voting_manager import VotingManager
from app.utils.websocket_manager import websocket_manager

router = APIRouter(prefix="/ws", tags=["realtime"])

logger = logging.getLogger(__name__)


@router.websocket("/sessions/{session_id}")
async def session_socket(
    websocket: WebSocket,
    session_id: str,
    db: Session = Depends(get_db),
) -> None:
    """
    Real-time channel for one session. Participants only; authenticated by
    the same access_token cookie as the HTTP API.
    """
    user = load_user_for_token(websocket.cookies.get("access_token"), db)
    if user is None:
        await websocket.close(code=1008, reason="Not authenticated")
        return

    session_manager = SessionManager(db=db)
    session = session_manager.get_session(session_id)
    if session is None:
        logger.error("Session %s not found for WebSocket connection", session_id)
        await websocket.close(code=1008, reason="Session not found")
        return
    if not session_manager.is_participant(session, user):
        await websocket.close(code=1008, reason="Not a participant")
        return

    connection_id = await websocket_manager.connect(
        websocket, session_id, user_id=user.user_id
    )
    voting_manager = VotingManager(db=db)
    await websocket_manager.send_personal_message(
        session_id,
        connection_id,
        {
            "type": "connection_ack",
            "payload": {
                "sessionId": session_id,
                "connectionId": connection_id,
                "userId": user.user_id,
                "state": voting_manager.session_snapshot(session),
            },
        },
    )

    try:
        while True:
            message = await websocket.receive_json()
            message_type = message.get("type")

            if message_type == "ping":
                await websocket_manager.send_personal_message(
                    session_id,
                    connection_id,
                    {
                        "type": "pong",
                        "payload": {
                            "sessionId": session_id,
                            "timestamp": datetime.now(UTC).isoformat(),
                        },
                    },
                )
            elif message_type == "state_request":
                db.expire_all()
                current = session_manager.get_session(session_id)
                if current is None:
                    break
                await websocket_manager.send_personal_message(
                    session_id,
                    connection_id,
                    {
                        "type": "session_state",
                        "payload": voting_manager.session_snapshot(current),
                    },
                )
            else:
                await websocket_manager.send_personal_message(
                    session_id,
                    connection_id,
                    {
                        "type": "error",
                        "payload": {
                            "message": f"Unknown message type '{message_type}'",
                        },
                    },
                )
    except WebSocketDisconnect:
        logger.debug(
            "WebSocketDisconnect: session_id=%s connection_id=%s",
            session_id,
            connection_id,
        )
    finally:
        websocket_manager.disconnect(session_id, connection_id)
