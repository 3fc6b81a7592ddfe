import re
import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.models.user import User
from app.models.voting_session import VotingSession

USER_ID_PREFIX = "USR"
USER_ID_SEQUENCE_WIDTH = 3
USER_ID_STEM_LENGTH = 7

SESSION_ID_PREFIX = "SES"
SESSION_ID_SUFFIX_WIDTH = 4

# No 0/O or 1/I so codes can be read aloud.
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DEFAULT_JOIN_CODE_LENGTH = 6


def _clean_stem(value: Optional[str]) -> str:
    """
    Normalise a display name into a seven-character uppercase stem.
    Non-alphanumeric characters are stripped and the result padded with X.
    """
    if not value:
        cleaned = ""
    else:
        cleaned = re.sub(r"[^A-Z0-9]", "", value.upper())
    if not cleaned:
        cleaned = "X" * USER_ID_STEM_LENGTH
    return (cleaned[:USER_ID_STEM_LENGTH]).ljust(USER_ID_STEM_LENGTH, "X")


def build_user_id_prefix(display_name: Optional[str]) -> str:
    return f"{USER_ID_PREFIX}-{_clean_stem(display_name)}"


def _next_sequence_for_prefix(db: Session, prefix: str) -> int:
    """
    Determine the next numeric sequence for the given prefix.
    The prefix is expected without the trailing dash (e.g., 'USR-ALICEXX').
    """
    like_pattern = f"{prefix}-%"
    existing = (
        db.query(User.user_id)
        .filter(User.user_id.like(like_pattern))
        .order_by(User.user_id.desc())
        .limit(1)
        .scalar()
    )
    if not existing:
        return 1
    try:
        return int(existing.split("-")[-1]) + 1
    except (ValueError, IndexError):
        return 1


def generate_user_id(db: Session, display_name: Optional[str]) -> str:
    """
    Construct a unique `user_id` following the USR-NAMESTM-NNN pattern.
    The sequence component increments per prefix to avoid collisions.
    """
    prefix = build_user_id_prefix(display_name)
    sequence = _next_sequence_for_prefix(db, prefix)
    return f"{prefix}-{sequence:0{USER_ID_SEQUENCE_WIDTH}d}"


def _format_base36(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    if number == 0:
        return "0"
    result = []
    while number:
        number, remainder = divmod(number, 36)
        result.append(digits[remainder])
    return "".join(reversed(result))


def _next_session_sequence(db: Session, date_prefix: str) -> int:
    like_pattern = f"{date_prefix}-%"
    latest: Optional[str] = (
        db.query(VotingSession.session_id)
        .filter(VotingSession.session_id.like(like_pattern))
        .order_by(VotingSession.session_id.desc())
        .limit(1)
        .scalar()
    )
    if not latest:
        return 1
    try:
        return int(latest.split("-")[-1], 36) + 1
    except (ValueError, IndexError):
        return 1


def generate_session_id(db: Session, created_at: Optional[datetime] = None) -> str:
    """
    Construct a unique session identifier with the format SESYYYYMMDD-XXXX
    where the suffix is a zero-padded base36 sequence scoped to the given day.
    """
    timestamp = (created_at or datetime.now(timezone.utc)).astimezone(timezone.utc)
    date_prefix = f"{SESSION_ID_PREFIX}{timestamp:%Y%m%d}"
    sequence = _next_session_sequence(db, date_prefix)
    suffix = _format_base36(sequence).rjust(SESSION_ID_SUFFIX_WIDTH, "0")
    return f"{date_prefix}-{suffix}"


def normalize_join_code(code: Optional[str]) -> str:
    return re.sub(r"[^A-Z0-9]", "", (code or "").upper())


def generate_join_code(db: Session, length: int = DEFAULT_JOIN_CODE_LENGTH) -> str:
    """Return a random join code not used by any existing session."""
    while True:
        code = "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))
        taken = (
            db.query(VotingSession.session_id)
            .filter(VotingSession.code == code)
            .first()
        )
        if taken is None:
            return code
