"""
WifiAtlas Backend — Account Service
=====================================

What:  Registration and login; both return the user and a bearer token.
Why:   Every write in the system is attributed to a user, and the user's
       organization decides password visibility.
"""

import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.exceptions import AuthenticationError, ConflictError, ValidationError
from wifiatlas.models.user import Organization, User
from wifiatlas.schemas.auth import AuthResponse, UserResponse
from wifiatlas.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id, user.email, user.organization_id),
    )


class AccountService:

    async def register(
        self,
        db: AsyncSession,
        email: str,
        username: str,
        password: str,
        organization_slug: Optional[str] = None,
    ) -> AuthResponse:
        """
        Create a user, optionally joining an organization by slug.

        An unknown slug is ignored and the user starts without an organization.

        Raises:
            ValidationError: password shorter than 8 characters
            ConflictError:   email or username already registered
        """
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="password",
            )

        email = email.strip().lower()
        username = username.strip()

        existing = await db.execute(
            select(User.id).where(or_(User.email == email, User.username == username))
        )
        if existing.first() is not None:
            raise ConflictError("User already exists", context={"email": email})

        organization_id = None
        if organization_slug:
            result = await db.execute(
                select(Organization.id).where(Organization.slug == organization_slug)
            )
            organization_id = result.scalar_one_or_none()
            if organization_id is None:
                logger.info("Registration ignored unknown organization slug %s", organization_slug)

        user = User(
            email=email,
            username=username,
            password_hash=hash_password(password),
            organization_id=organization_id,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("User already exists", context={"email": email})

        logger.info("User %s registered", user.id)
        return _auth_response(user)

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """
        Raises:
            AuthenticationError (401): unknown email or wrong password
        """
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")

        logger.info("User %s logged in", user.id)
        return _auth_response(user)


account_service = AccountService()
