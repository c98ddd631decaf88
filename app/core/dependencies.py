"""
FastAPI Dependencies for Teamsheet.

Reusable dependencies for sessions, the team service, and caller identity.
"""

import uuid
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.services.team_service import TeamRules, TeamService
from app.services.team_store import TeamStore


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database sessions."""
    async for session in get_db():
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_team_service(session: DbSession) -> TeamService:
    """Build a team service bound to the request's session."""
    return TeamService(TeamStore(session), TeamRules.from_settings(get_settings()))


TeamServiceDep = Annotated[TeamService, Depends(get_team_service)]


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> uuid.UUID:
    """
    Get the calling user's identifier.

    Identity is issued upstream; the gateway forwards it as an opaque
    X-User-Id header.

    Raises:
        HTTPException: If the header is missing or malformed
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identifier",
        )


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
