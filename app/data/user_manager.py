import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..utils.identifiers import generate_user_id

logger = logging.getLogger("auth")

DISPLAY_NAME_MAX_LENGTH = 100


class UserManager:
    """Manages user data using SQLAlchemy."""

    def __init__(self):
        self.db = None

    def set_db(self, db: Session):
        """Set the database session."""
        self.db = db

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get user data by primary key user_id."""
        req_id = uuid.uuid4()
        logger.debug(f"[{req_id}] Attempting to get user with user_id: {user_id}")
        if not user_id:
            return None
        user = self.db.query(User).filter(User.user_id == user_id).first()
        if user:
            logger.debug(f"[{req_id}] User found with user_id: {user_id}")
        else:
            logger.warning(f"[{req_id}] User not found with user_id: {user_id}")
        return user

    def add_user(self, display_name: str) -> User:
        """
        Create a user from a display name and return it.

        Raises ValueError when the name is blank or too long.
        """
        req_id = uuid.uuid4()
        clean_name = (display_name or "").strip()
        if not clean_name:
            logger.warning(f"[{req_id}] Rejected user creation with a blank name.")
            raise ValueError("A display name is required.")
        if len(clean_name) > DISPLAY_NAME_MAX_LENGTH:
            raise ValueError(
                f"Display name must be at most {DISPLAY_NAME_MAX_LENGTH} characters."
            )

        db_user = User(
            user_id=generate_user_id(self.db, clean_name),
            display_name=clean_name,
            is_active=True,
            last_active_at=datetime.now(timezone.utc),
        )
        try:
            self.db.add(db_user)
            self.db.commit()
            self.db.refresh(db_user)
            logger.info(
                f"[{req_id}] Added user '{db_user.display_name}' with user_id {db_user.user_id}"
            )
            return db_user
        except Exception as e:
            self.db.rollback()
            logger.error(f"[{req_id}] Error adding user '{clean_name}': {str(e)}")
            raise

    def touch_user(self, user: User) -> User:
        """Record activity for the user."""
        user.last_active_at = datetime.now(timezone.utc)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get_user_count(self) -> int:
        return self.db.query(User).count()


def get_user_manager(db: Session = Depends(get_db)) -> UserManager:
    """Dependency provider for UserManager."""
    req_id = uuid.uuid4()
    logger.debug(f"[{req_id}] get_user_manager called")
    manager = UserManager()
    manager.set_db(db)
    return manager
