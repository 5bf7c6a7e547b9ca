"""Session token resolution.

Tokens are issued by the external login service; this module stores only
their SHA-256 hash and resolves presented tokens back to a user.
"""

import hashlib
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from hrdesk.config import get_settings
from hrdesk.core.time import utcnow
from hrdesk.db.models import Session, User


def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def create_session(db: DBSession, user: User) -> str:
    """Register a session for ``user`` and return the raw token.

    Used by the issuing service's import path and by tests.
    """
    settings = get_settings()
    session_token = secrets.token_urlsafe(32)

    db.add(
        Session(
            user_id=user.id,
            token_hash=hash_session_token(session_token),
            expires_at=utcnow() + timedelta(seconds=settings.session_ttl_seconds),
        )
    )
    db.commit()
    return session_token


def validate_session(db: DBSession, session_token: str) -> Optional[Session]:
    """Return the unexpired session matching ``session_token``, if any."""
    if not session_token:
        return None

    return db.query(Session).filter(
        Session.token_hash == hash_session_token(session_token),
        Session.expires_at > utcnow(),
    ).first()
