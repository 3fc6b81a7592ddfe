from contextlib import asynccontextmanager
from typing import Optional
import logging
import traceback
import json

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy import text

from app.database import engine, Base, SessionLocal
import app.models  # noqa: F401  # Ensure all SQLAlchemy models are registered
from app.routers import auth as auth_router
from app.routers import sessions as sessions_router
from app.routers import ideas as ideas_router
from app.routers import voting as voting_router
from app.routers import realtime as realtime_router
from app.auth.auth import auth_middleware
from app.services.session_lifecycle import SessionStateError
from app.utils.logging_config import setup_logging
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    Base.metadata.create_all(bind=engine)
    logging.getLogger("app").info("Database initialized.")
    yield
    logging.getLogger("app").info("Application shutdown.")


app = FastAPI(
    title="Terna",
    description="Collaborative idea generation and elimination voting",
    lifespan=lifespan,
)


async def audit_action_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    method = request.method.upper()
    if method not in {"POST", "PUT", "PATCH", "DELETE"}:
        return await call_next(request)

    path = request.url.path
    if not path.startswith("/api/"):
        return await call_next(request)

    payload_summary: Optional[str] = None
    if request.headers.get("content-type", "").lower().startswith("application/json"):
        try:
            body = await request.body()
            request._body = body  # Preserve for any downstream access
            if body:
                parsed = json.loads(body.decode("utf-8"))
                if isinstance(parsed, dict):
                    redacted = {}
                    for key, value in parsed.items():
                        if "token" in str(key).lower():
                            redacted[key] = "***"
                        elif isinstance(value, (str, int, float, bool, type(None))):
                            redacted[key] = value
                        else:
                            redacted[key] = type(value).__name__
                    payload_summary = json.dumps(redacted, ensure_ascii=True)
                else:
                    payload_summary = type(parsed).__name__
        except (ValueError, UnicodeDecodeError):
            payload_summary = "unavailable"

    response = await call_next(request)

    logger = logging.getLogger("audit")
    details = {
        "method": method,
        "path": path,
        "status": response.status_code,
        "user": getattr(request.state, "user_id", None) or "anonymous",
    }
    if payload_summary:
        details["payload"] = payload_summary
    logger.info("Audit action: %s", details)
    return response


app.add_middleware(BaseHTTPMiddleware, dispatch=audit_action_middleware)

# Added last so it runs first and sets request.state.user_id for the audit log
app.add_middleware(BaseHTTPMiddleware, dispatch=auth_middleware)

# Include routers
app.include_router(auth_router.router)
app.include_router(sessions_router.router)
app.include_router(ideas_router.ideas_router)
app.include_router(voting_router.voting_router)
app.include_router(realtime_router.router)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger = logging.getLogger("app")
    logger.error(f"Global exception: {str(exc)}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error. Please check logs."},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger = logging.getLogger("app")
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code} error: {exc.detail}\n{traceback.format_exc()}"
        )
    else:
        logger.info(f"HTTP {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SessionStateError)
async def session_state_exception_handler(request: Request, exc: SessionStateError):
    logging.getLogger("app").info(f"Rejected lifecycle change: {exc}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger = logging.getLogger("app")
    errors = exc.errors()

    # Extract just the error messages for a simpler, guaranteed-serializable response
    error_messages = [err["msg"] for err in errors]

    logger.warning(f"Validation error: {error_messages}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": error_messages},
    )


@app.get("/health", tags=["healthcheck"])
async def health_check():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logging.getLogger("app").error(f"Health check database connection error: {e}")
        raise HTTPException(
            status_code=503, detail=f"Database connection failed: {str(e)}"
        )
    finally:
        db.close()
