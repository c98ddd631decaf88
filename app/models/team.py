"""
Team model for Teamsheet.
"""

import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IdentityMixin

if TYPE_CHECKING:
    from app.models.membership import TeamMember


class TeamStatus(str, Enum):
    """Team lifecycle status. Only ever moves DRAFT -> ACTIVE."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"


class Team(IdentityMixin, Base):
    """Team model representing a squad competing in a zone."""

    __tablename__ = "teams"

    # Identity
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    zone_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Partition key scoping team-name uniqueness",
    )
    logo_dna: Mapped[dict[str, Any] | None] = mapped_column(
        nullable=True,
        comment="Opaque crest descriptor, stored as given",
    )

    # Lifecycle
    status: Mapped[TeamStatus] = mapped_column(
        SAEnum(TeamStatus, name="team_status"),
        default=TeamStatus.DRAFT,
        nullable=False,
    )
    total_matches: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    # Captain (ownership reference)
    captain_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Relationships
    members: Mapped[list["TeamMember"]] = relationship(
        "TeamMember",
        back_populates="team",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TeamMember.joined_at",
    )

    # Constraints
    __table_args__ = (
        UniqueConstraint("name", "zone_id", name="uq_teams_name_zone"),
        Index("ix_teams_zone_status", "zone_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, name={self.name}, zone={self.zone_id}, status={self.status})>"
