"""
WifiAtlas Backend — Request Dependencies
==========================================

What:  FastAPI dependencies that resolve the caller and the shared
       collaborators (broadcaster, network directory) for a request.
Why:   Routes declare what they need; nothing reaches into module globals.

Key Dependencies:
    - get_current_user:      bearer token required (401 missing, 403 invalid,
                             401 unknown user)
    - get_optional_user:     same, but anonymous and bad tokens yield None
    - get_broadcaster:       OrganizationBroadcaster from app.state
    - get_network_directory: NetworkDirectory from app.state
    - get_session_factory:   session factory for the WebSocket endpoint

The User row is loaded on every authenticated request, so `organization_id`
always reflects the database, not the claim baked into the token.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wifiatlas.database import async_session_factory, get_db_session
from wifiatlas.exceptions import AuthenticationError, WifiAtlasError
from wifiatlas.models.user import User
from wifiatlas.security import decode_access_token
from wifiatlas.services.broadcaster import Broadcaster
from wifiatlas.services.directory_client import NetworkDirectory

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if credentials is None:
        raise AuthenticationError("Access token required")

    payload = decode_access_token(credentials.credentials)
    user = await db.get(User, payload["sub"])
    if user is None:
        raise AuthenticationError("User not found")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    """Authenticated user if a valid token is presented, otherwise None."""
    if credentials is None:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
    except WifiAtlasError:
        logger.debug("Ignoring invalid bearer token on optional-auth route")
        return None
    return await db.get(User, payload["sub"])


def get_broadcaster(connection: HTTPConnection) -> Broadcaster:
    return connection.app.state.broadcaster


def get_network_directory(connection: HTTPConnection) -> NetworkDirectory:
    return connection.app.state.network_directory


def get_session_factory() -> async_sessionmaker:
    """Session factory for long-lived connections that open short sessions."""
    return async_session_factory
