"""
WifiAtlas Backend — Password Hashing & Bearer Tokens
======================================================

What:  bcrypt password hashing and JWT issue/verify helpers.
Why:   One place owns the cryptographic choices; routes and services only
       call hash_password / verify_password / create_access_token /
       decode_access_token.

Token Claims:
    - sub:    User ID
    - email:  User email at issue time
    - org_id: Organization ID at issue time (informational; the live value is
              re-read from the database on every request)
    - exp/iat

Security Notes:
    - bcrypt embeds a random salt in every hash
    - decode_access_token raises AuthenticationError(403) for bad signature,
      expiry or malformed payload; the caller never sees PyJWT exceptions
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from wifiatlas.config import settings
from wifiatlas.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Password Hashing
# ══════════════════════════════════════════════════════════════════════════


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Returns False (never raises) for a malformed stored hash, so a corrupt
    row reads as "invalid credentials" rather than a 500.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError as e:
        logger.warning("Password verification failed: %s", e)
        return False


# ══════════════════════════════════════════════════════════════════════════
# JWT
# ══════════════════════════════════════════════════════════════════════════


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    organization_id: Optional[uuid.UUID],
    expires_in: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "email": email,
        "org_id": str(organization_id) if organization_id else None,
        "iat": now,
        "exp": now + (expires_in or timedelta(days=settings.jwt_expire_days)),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Validate signature and expiry and return the claims.

    Raises:
        AuthenticationError (403): expired, tampered or malformed token
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Invalid or expired token", status_code=403)
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected bearer token: %s", e)
        raise AuthenticationError("Invalid or expired token", status_code=403)

    try:
        payload["sub"] = uuid.UUID(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid or expired token", status_code=403)
    return payload
