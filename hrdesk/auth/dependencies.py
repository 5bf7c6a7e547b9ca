"""FastAPI dependencies for authentication."""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext
from hrdesk.auth.rbac import Role, parse_role
from hrdesk.auth.session import validate_session
from hrdesk.config import get_settings
from hrdesk.core.exceptions import AuthenticationError, AuthorizationError
from hrdesk.core.logging import get_logger
from hrdesk.db import get_db
from hrdesk.db.models import User

logger = get_logger(__name__)


def _session_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, else the session cookie."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(get_settings().session_cookie_name)


async def get_current_user(
    request: Request,
    db: DBSession = Depends(get_db),
) -> User:
    """Get the current authenticated user.

    Raises:
        AuthenticationError: If no valid session token was presented.
    """
    session_token = _session_token(request)
    if not session_token:
        logger.info("Missing session token", data={"path": request.url.path})
        raise AuthenticationError("Not authenticated")

    session = validate_session(db, session_token)
    if not session:
        logger.info("Invalid or expired session", data={"path": request.url.path})
        raise AuthenticationError("Session expired or invalid")

    user = db.get(User, session.user_id)
    if not user or not user.is_active:
        logger.warning("Session for missing or inactive user", data={"user_id": session.user_id})
        raise AuthenticationError("User not found or inactive")

    return user


async def get_execution_context(
    current_user: User = Depends(get_current_user),
) -> ExecutionContext:
    """Caller identity for HR tool calls."""
    return ExecutionContext.for_user(current_user)


async def get_admin_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require the admin role."""
    if parse_role(current_user.role) is not Role.ADMIN:
        logger.warning("Admin access denied", data={"user_id": current_user.id})
        raise AuthorizationError("Admin access required")
    return current_user
