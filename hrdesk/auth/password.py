"""Password hashing utilities (Argon2id)."""

from __future__ import annotations

import re

from argon2 import PasswordHasher
from argon2.low_level import Type

_argon2_hasher = PasswordHasher(type=Type.ID)

_PASSWORD_MIN_LENGTH = 8
_PASSWORD_MAX_LENGTH = 128


def validate_password_complexity(password: str) -> str | None:
    """Check password meets complexity requirements.

    Returns None if valid, or an error message string if invalid.
    """
    if len(password) < _PASSWORD_MIN_LENGTH:
        return f"Password must be at least {_PASSWORD_MIN_LENGTH} characters"
    if len(password) > _PASSWORD_MAX_LENGTH:
        return f"Password must be at most {_PASSWORD_MAX_LENGTH} characters"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"\d", password):
        return "Password must contain at least one digit"
    return None


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return _argon2_hasher.hash(password)
