from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.auth.auth import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_current_active_user,
)
from app.config.loader import get_secure_cookies_enabled
from app.data.user_manager import UserManager, get_user_manager
from app.models.user import User
from app.schemas.user import LoginRequest, UserResponse

router = APIRouter(prefix="/api/auth", tags=["authentication"])


@router.post("/login", response_model=UserResponse)
async def login(
    response: Response,
    login_request: LoginRequest,
    user_manager: UserManager = Depends(get_user_manager),
) -> UserResponse:
    """
    Join with a display name.
    Creates the user and sets an HTTPOnly cookie with the access token.
    """
    try:
        user = user_manager.add_user(login_request.name)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    access_token = create_access_token(
        data={"sub": user.user_id, "name": user.display_name},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        secure=get_secure_cookies_enabled(),
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        expires=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite="lax",
        path="/",
    )
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def read_current_user(
    current_user: User = Depends(get_current_active_user),
    user_manager: UserManager = Depends(get_user_manager),
) -> UserResponse:
    return UserResponse.model_validate(user_manager.touch_user(current_user))


@router.post("/logout")
async def logout(response: Response):
    """Logs the user out by clearing the access token cookie."""
    response.delete_cookie(
        key="access_token",
        path="/",
        httponly=True,
        secure=get_secure_cookies_enabled(),
        samesite="lax",
    )
    return {"message": "Logout successful"}
