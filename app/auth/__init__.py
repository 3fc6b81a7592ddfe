from .auth import (
    create_access_token,
    decode_token_subject,
    get_token_from_cookie,
    get_current_user,
    load_user_for_token,
    get_current_active_user,
    auth_middleware,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    SECRET_KEY,
    ALGORITHM,
)

__all__ = [
    "create_access_token",
    "decode_token_subject",
    "get_token_from_cookie",
    "get_current_user",
    "load_user_for_token",
    "get_current_active_user",
    "auth_middleware",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
    "SECRET_KEY",
    "ALGORITHM",
]
