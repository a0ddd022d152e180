"""
ClimbTime Backend - Password Hashing and Session Tokens
=========================================================

What:  Pure helpers for credential storage and session signing.
How:   Passwords: PBKDF2-HMAC-SHA256 with a random 16-byte salt, stored as
       "pbkdf2:sha256:<iterations>$<salt>$<hex digest>".
       Sessions: HS256 JWT with `sub` = user id, signed with settings.secret_key,
       valid for settings.session_max_age_days.
Who:   UserService (signup/login) and climbtime.dependencies (token checks).
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt

from climbtime.config import settings

logger = logging.getLogger(__name__)

PASSWORD_HASH_PREFIX = "pbkdf2:sha256:"
PASSWORD_ITERATIONS = 260_000

JWT_ALGORITHM = "HS256"


# ══════════════════════════════════════════════════════════════════════════
# Password Hashing
# ══════════════════════════════════════════════════════════════════════════

def hash_password(password: str, iterations: int = PASSWORD_ITERATIONS) -> str:
    salt = secrets.token_hex(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"{PASSWORD_HASH_PREFIX}{iterations}${salt}${dk.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a password against a stored hash.

    Malformed hashes verify as False rather than raising: a corrupt row
    must look like a wrong password to the caller, not a 500.
    """
    if not password_hash or not password_hash.startswith(PASSWORD_HASH_PREFIX):
        return False
    parts = password_hash.split("$")
    if len(parts) != 3:
        return False
    header, salt, stored_hash = parts
    try:
        iterations = int(header[len(PASSWORD_HASH_PREFIX):])
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    # Constant-time comparison
    return hmac.compare_digest(dk.hex(), stored_hash)


# ══════════════════════════════════════════════════════════════════════════
# Session Tokens
# ══════════════════════════════════════════════════════════════════════════

def create_session_token(user_id: UUID, expires_in: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expiry = now + (expires_in or timedelta(days=settings.session_max_age_days))
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int(expiry.timestamp()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str) -> Optional[UUID]:
    """
    Return the user id carried by a valid token, or None.

    Expired, tampered and structurally invalid tokens all yield None;
    the dependency layer decides whether None means 401.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Session token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug("Invalid session token: %s", str(e))
        return None

    try:
        return UUID(payload["sub"])
    except (KeyError, TypeError, ValueError):
        logger.debug("Session token has no usable subject")
        return None
