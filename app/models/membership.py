"""
Team membership model for Teamsheet.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, utcnow

if TYPE_CHECKING:
    from app.models.team import Team
    from app.models.user import User


class MemberRole(str, Enum):
    """Role a user holds on their team."""

    CAPTAIN = "CAPTAIN"
    VICE = "VICE"
    PLAYER = "PLAYER"


class TeamMember(Base):
    """Association between a team and a user, keyed by (team_id, user_id)."""

    __tablename__ = "team_members"

    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("teams.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        # A user holds at most one membership system-wide
        unique=True,
    )

    role: Mapped[MemberRole] = mapped_column(
        SAEnum(MemberRole, name="member_role"),
        default=MemberRole.PLAYER,
        nullable=False,
    )
    jersey_number: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    # Relationships
    team: Mapped["Team"] = relationship(
        "Team",
        back_populates="members",
    )
    user: Mapped["User | None"] = relationship(
        "User",
        back_populates="membership",
    )

    __table_args__ = (
        Index("ix_team_members_team_joined", "team_id", "joined_at"),
    )

    def __repr__(self) -> str:
        return f"<TeamMember(team_id={self.team_id}, user_id={self.user_id}, role={self.role})>"
