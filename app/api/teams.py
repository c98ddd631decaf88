"""
Team API Routes - Team lifecycle and roster endpoints.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from app.core.dependencies import CurrentUserId, TeamServiceDep
from app.models.membership import MemberRole
from app.models.team import TeamStatus
from app.services.team_service import TeamNameTaken

router = APIRouter()


# ==================== Pydantic Schemas ====================

class TeamCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    zone_id: int
    logo_dna: Optional[dict[str, Any]] = None


class NameCheckOut(BaseModel):
    taken: bool


class TeamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    captain_id: uuid.UUID
    zone_id: int
    logo_dna: Optional[dict[str, Any]] = None
    total_matches: int
    status: TeamStatus
    created_at: Optional[datetime] = None


class MyTeamOut(TeamOut):
    my_role: MemberRole


class RosterEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    name: str
    role: MemberRole
    position: str
    rating: int | float
    visual: dict[str, Any]
    reputation: Optional[int] = None
    jersey_number: Optional[int] = None
    joined_at: Optional[datetime] = None


class ActionOut(BaseModel):
    success: bool = True


# ==================== Team Routes ====================

@router.get("/name-check", response_model=NameCheckOut)
async def check_name(
    service: TeamServiceDep,
    name: str = Query(..., min_length=1, max_length=100),
    zone_id: int = Query(...),
):
    """Check whether a team name is taken in a zone."""
    taken = await service.check_name_availability(name.strip(), zone_id)
    return NameCheckOut(taken=taken)


@router.post("", response_model=TeamOut, status_code=status.HTTP_201_CREATED)
async def create_team(
    data: TeamCreate,
    service: TeamServiceDep,
    current_user_id: CurrentUserId,
):
    """Create a team captained by the caller. Names are unique per zone."""
    if await service.check_name_availability(data.name, data.zone_id):
        raise TeamNameTaken()
    return await service.create_team(
        captain_id=current_user_id,
        name=data.name,
        zone_id=data.zone_id,
        logo_dna=data.logo_dna,
    )


@router.get("/me", response_model=MyTeamOut)
async def get_my_team(
    service: TeamServiceDep,
    current_user_id: CurrentUserId,
):
    """Get the caller's team and role."""
    my_team = await service.get_my_team(current_user_id, strict=True)
    if my_team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not on a team")
    return my_team


@router.get("/{team_id}", response_model=TeamOut)
async def get_team(team_id: uuid.UUID, service: TeamServiceDep):
    """Get a team by ID."""
    team = await service.get_team(team_id)
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    return team


@router.get("/{team_id}/roster", response_model=List[RosterEntryOut])
async def get_roster(team_id: uuid.UUID, service: TeamServiceDep):
    """Get the team roster, oldest member first."""
    return await service.get_team_roster(team_id)


# ==================== Membership Routes ====================

@router.post("/{team_id}/join", response_model=ActionOut)
async def join_team(
    team_id: uuid.UUID,
    service: TeamServiceDep,
    current_user_id: CurrentUserId,
):
    """Join a team as a player."""
    await service.join_team(current_user_id, team_id)
    return ActionOut()


@router.post("/{team_id}/leave", response_model=ActionOut)
async def leave_team(
    team_id: uuid.UUID,
    service: TeamServiceDep,
    current_user_id: CurrentUserId,
):
    """Leave a team."""
    await service.leave_team(current_user_id, team_id)
    return ActionOut()


# ==================== Captain Routes ====================

@router.post("/{team_id}/members/{member_id}/kick", response_model=ActionOut)
async def kick_member(
    team_id: uuid.UUID,
    member_id: uuid.UUID,
    service: TeamServiceDep,
    current_user_id: CurrentUserId,
):
    """Remove a member (captain only)."""
    await service.kick_member(current_user_id, team_id, member_id)
    return ActionOut()


@router.post("/{team_id}/members/{member_id}/promote", response_model=ActionOut)
async def promote_member(
    team_id: uuid.UUID,
    member_id: uuid.UUID,
    service: TeamServiceDep,
    current_user_id: CurrentUserId,
):
    """Promote a player to vice-captain (captain only)."""
    await service.promote_member(current_user_id, team_id, member_id)
    return ActionOut()
