from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from datetime import datetime, timedelta, UTC
from jose import JWTError, jwt
from app.data.user_manager import UserManager
from app.database import get_db
from app.models.user import User as UserModel
import os
import logging
from fastapi.responses import JSONResponse
from app.config.loader import get_access_token_expire_minutes

# Set up a dedicated logger for authentication events
logger = logging.getLogger("auth_module")
logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


# --- Configuration ---
def generate_dev_key() -> str:
    """Generate a secure default key for development environments ONLY."""
    import secrets

    key = secrets.token_urlsafe(48)  # 48 bytes = 64 characters
    logger.warning(
        "\n"
        + "*" * 80
        + "\n"
        + "DEVELOPMENT MODE: Using generated secret key.\n"
        + "This is NOT secure for production use!\n"
        + "Set TERNA_JWT_SECRET_KEY in your environment variables for production.\n"
        + "*" * 80
    )
    return key


def validate_secret_key(key: str) -> bool:
    """Validate that a JWT secret key meets minimum security requirements."""
    if not key:
        return False
    if len(key) < 32:
        logger.error("JWT secret key must be at least 32 characters long for security.")
        return False
    return True


def _is_production_mode() -> bool:
    env = os.getenv("TERNA_ENV", "development").strip().lower()
    return env in {"production", "prod"}


def _resolve_secret_key(raw_key: Optional[str]) -> str:
    if not raw_key:
        # Production needs an explicit key; ephemeral keys log everyone out on restart.
        if _is_production_mode():
            raise RuntimeError(
                "Missing TERNA_JWT_SECRET_KEY while TERNA_ENV is set to production. "
                + "Configure a strong static secret before startup."
            )
        return generate_dev_key()
    if not validate_secret_key(raw_key):
        raise RuntimeError(
            "Invalid JWT secret key configuration. "
            + "The key must be at least 32 characters long. "
            + "Update TERNA_JWT_SECRET_KEY in your environment variables."
        )
    logger.info("JWT secret key validated and loaded from environment.")
    return raw_key


SECRET_KEY = _resolve_secret_key(os.getenv("TERNA_JWT_SECRET_KEY"))
ALGORITHM = "HS256"
JWT_ISSUER = os.getenv("TERNA_JWT_ISSUER", "terna")
ACCESS_TOKEN_EXPIRE_MINUTES = get_access_token_expire_minutes()

if ACCESS_TOKEN_EXPIRE_MINUTES > 60:
    logger.warning(
        f"Long token expiration time configured: {ACCESS_TOKEN_EXPIRE_MINUTES} minutes. "
        + "Consider reducing this value for better security."
    )

# --- Token Utilities ---


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Creates a new JWT access token.
    The 'sub' (subject) of the token is the user's user_id.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update(
        {
            "exp": expire,
            "iat": datetime.now(UTC),
            "iss": JWT_ISSUER,
        }
    )

    try:
        encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
        logger.info(f"Created access token for subject: {data.get('sub')}")
        return encoded_jwt
    except Exception as e:
        logger.error(
            f"Error creating access token for subject {data.get('sub')}: {str(e)}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not create access token due to an internal error.",
        )


def decode_token_subject(token: Optional[str]) -> Optional[str]:
    """Return the token's subject, or None when the token is missing or invalid."""
    if not token:
        return None
    if token.startswith("Bearer "):
        token = token.split(" ", 1)[1]
    try:
        payload = jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[ALGORITHM],
            issuer=JWT_ISSUER,
            options={"verify_aud": False},
        )
    except JWTError:
        logger.warning("JWT decode failure.")
        return None
    return payload.get("sub")


async def get_token_from_cookie(request: Request) -> Optional[str]:
    """
    Extracts JWT token from the 'access_token' HTTPOnly cookie.
    Handles potential 'Bearer ' prefix.
    """
    token_with_prefix = request.cookies.get("access_token")
    if not token_with_prefix:
        logger.debug("No 'access_token' cookie found in request.")
        return None

    if token_with_prefix.startswith("Bearer "):
        return token_with_prefix.split(" ", 1)[1]
    return token_with_prefix


# --- User Retrieval Dependencies ---


async def get_current_user(
    token: Optional[str] = Depends(get_token_from_cookie),
) -> str:
    """
    FastAPI dependency returning the user_id (subject) of the JWT stored in
    the access_token cookie. Raises 401 if the token is missing or invalid.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials. Invalid or expired token.",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if token is None:
        logger.warning("Authentication required: No token found.")
        raise credentials_exception

    user_id = decode_token_subject(token)
    if user_id is None:
        raise credentials_exception
    logger.debug(f"Token decoded for user_id: {user_id}")
    return user_id


def load_user_for_token(token: Optional[str], db: Session) -> Optional[UserModel]:
    """Resolve a token to an active user row, or None."""
    user_id = decode_token_subject(token)
    if user_id is None:
        return None
    user_crud = UserManager()
    user_crud.set_db(db)
    user = user_crud.get_user_by_id(user_id)
    if user is None or not user.is_active:
        return None
    return user


async def get_current_active_user(
    current_user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserModel:
    """
    FastAPI dependency to get the active user row for the token's user_id.
    The row belongs to the request's database session so managers can attach
    it to sessions and votes.
    """
    user_crud = UserManager()
    user_crud.set_db(db)
    user = user_crud.get_user_by_id(current_user_id)

    if not user:
        logger.error(
            f"get_current_active_user: User '{current_user_id}' not found in DB, though token was valid."
        )
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User associated with token not found.",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user."
        )
    return user


# --- Authentication Middleware ---

EXEMPT_PATHS = [
    "/api/auth/login",  # Name-only sign in
    "/api/auth/logout",
    "/health",
    "/docs",
    "/openapi.json",
]


async def auth_middleware(request: Request, call_next):
    """
    Middleware to check user authentication via HTTPOnly cookie token.
    Returns 401 for unauthenticated calls to protected API routes; anything
    outside /api/ is left to the route itself.
    """
    path = request.url.path

    if path in EXEMPT_PATHS or not path.startswith("/api/"):
        return await call_next(request)

    token = await get_token_from_cookie(request)
    user: Optional[UserModel] = None
    db: Optional[Session] = None

    if token:
        try:
            # Use the overridden get_db when present so tests share one session.
            if get_db in request.app.dependency_overrides:
                db = request.app.dependency_overrides[get_db]()
            else:
                db = next(get_db())
            user = load_user_for_token(token, db)
        except Exception as e:
            logger.error(
                f"Auth Middleware: Unexpected error during token validation for path '{path}': {str(e)}",
                exc_info=True,
            )
            user = None
        finally:
            if db and get_db not in request.app.dependency_overrides:
                db.close()

    if user is None:
        logger.warning(
            f"Auth Middleware: Unauthenticated access attempt to protected path: {path}"
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": "Not authenticated to access this API endpoint."},
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user_id = user.user_id
    return await call_next(request)


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
    "JWT_ISSUER",
]
