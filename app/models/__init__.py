"""
Teamsheet Models Package

All SQLAlchemy models for the team membership service.
"""

from app.models.base import Base
from app.models.card import Card
from app.models.membership import MemberRole, TeamMember
from app.models.team import Team, TeamStatus
from app.models.user import User

__all__ = [
    # Base
    "Base",
    # Teams
    "Team",
    "TeamStatus",
    "TeamMember",
    "MemberRole",
    # External, read-only
    "User",
    "Card",
]
