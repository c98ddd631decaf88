"""
Player card model for Teamsheet.

Cards are minted and rated elsewhere; rosters join them in read-only.
"""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IdentityMixin

if TYPE_CHECKING:
    from app.models.user import User


class Card(IdentityMixin, Base):
    """Player card describing a user's appearance and performance."""

    __tablename__ = "cards"

    # Ownership: the collection the card sits in vs. the player pictured on it
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Presentation
    display_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    position: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
        comment="FWD, MID, DEF or GK",
    )
    visual_dna: Mapped[dict[str, Any] | None] = mapped_column(
        nullable=True,
    )
    stats: Mapped[dict[str, Any] | None] = mapped_column(
        nullable=True,
        comment="Computed externally; holds rating, matches, goals",
    )

    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="cards",
        foreign_keys=[owner_id],
    )

    @property
    def is_self_card(self) -> bool:
        """True when the card pictures its own owner."""
        return self.owner_id == self.subject_id

    def __repr__(self) -> str:
        return f"<Card(id={self.id}, owner_id={self.owner_id}, display_name={self.display_name})>"
