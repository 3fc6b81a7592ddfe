"""
Data access layer providing managers for users, sessions, and ideas.
Each manager handles its own persistence through the request's SQLAlchemy session.
"""

from .user_manager import UserManager
from .session_manager import SessionManager
from .ideas_manager import IdeasManager

__all__ = ["UserManager", "SessionManager", "IdeasManager"]
