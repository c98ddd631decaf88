"""
User model for Teamsheet.

Users are owned by the identity provider; this service only reads them
when building rosters.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IdentityMixin

if TYPE_CHECKING:
    from app.models.card import Card
    from app.models.membership import TeamMember


class User(IdentityMixin, Base):
    """User model representing platform participants."""

    __tablename__ = "users"

    # Profile
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        index=True,
        nullable=False,
    )
    reputation_score: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    # Relationships
    membership: Mapped["TeamMember | None"] = relationship(
        "TeamMember",
        back_populates="user",
        uselist=False,
    )
    cards: Mapped[list["Card"]] = relationship(
        "Card",
        back_populates="owner",
        foreign_keys="Card.owner_id",
        order_by="Card.created_at",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"
