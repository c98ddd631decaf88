"""
Team Membership Service for Teamsheet.

Owns the team lifecycle and roster operations:
- Team creation with captain assignment (compensating delete on failure)
- Roster reads joined with user profiles and player cards
- Joining, leaving, kicking and promoting members
- Automatic DRAFT -> ACTIVE activation once a team fills up
"""

import logging
import uuid
from typing import Any

from fastapi import status
from sqlalchemy.orm import selectinload

from app.core.config import Settings, get_settings
from app.models.card import Card
from app.models.membership import MemberRole, TeamMember
from app.models.team import Team, TeamStatus
from app.models.user import User
from app.services.team_store import StoreError, TeamStore

logger = logging.getLogger(__name__)


# ==================== Errors ====================


class TeamError(Exception):
    """Base error for team membership operations."""

    default_message = "Team operation failed"
    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        self.status_code = status_code or self.default_status_code
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        """Error kind reported to callers."""
        return type(self).__name__


class StoreUnavailable(TeamError):
    default_message = "Team data is temporarily unavailable"
    default_status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class NameCheckFailed(StoreUnavailable):
    default_message = "Could not check whether the team name is available"


class TeamNameTaken(TeamError):
    default_message = "This team name is already used in your zone"
    default_status_code = status.HTTP_409_CONFLICT


class TeamCreationFailed(TeamError):
    default_message = "Could not create the team"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class CaptainAssignmentFailed(TeamError):
    """Team row was written but the captain membership was not."""

    default_message = "Team was created but the captain could not be assigned"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str | None = None, cleanup_failed: bool = False):
        super().__init__(message)
        # True when the orphaned team row may still exist
        self.cleanup_failed = cleanup_failed


class RosterFetchFailed(TeamError):
    default_message = "Could not load the team roster"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class AlreadyOnTeam(TeamError):
    default_message = "You are already a member of a team"
    default_status_code = status.HTTP_409_CONFLICT


class TeamFull(TeamError):
    default_message = "This team is full"
    default_status_code = status.HTTP_409_CONFLICT


class JoinFailed(TeamError):
    default_message = "Could not join the team"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class CaptainCannotLeave(TeamError):
    default_message = "The captain cannot leave the team. Hand over the captaincy first."
    default_status_code = status.HTTP_409_CONFLICT


class LeaveFailed(TeamError):
    default_message = "Could not leave the team"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InsufficientPrivilege(TeamError):
    default_message = "Only the team captain can do that"
    default_status_code = status.HTTP_403_FORBIDDEN


class KickFailed(TeamError):
    default_message = "Could not remove the member"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class PromotionFailed(TeamError):
    default_message = "Could not promote the member"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# ==================== Rules & Views ====================


class TeamRules:
    """Roster limits and display fallbacks applied by the service."""

    def __init__(
        self,
        max_members: int = 16,
        activation_threshold: int = 5,
        captain_jersey_number: int = 10,
        unknown_name: str = "unknown",
        unknown_position: str = "N/A",
        default_rating: int = 60,
    ):
        self.max_members = max_members
        self.activation_threshold = activation_threshold
        self.captain_jersey_number = captain_jersey_number
        self.unknown_name = unknown_name
        self.unknown_position = unknown_position
        self.default_rating = default_rating

    @classmethod
    def from_settings(cls, settings: Settings) -> "TeamRules":
        return cls(
            max_members=settings.team_max_members,
            activation_threshold=settings.team_activation_threshold,
            captain_jersey_number=settings.captain_jersey_number,
            unknown_name=settings.roster_unknown_name,
            unknown_position=settings.roster_unknown_position,
            default_rating=settings.roster_default_rating,
        )


class MyTeam:
    """A team flattened together with the caller's role on it."""

    def __init__(self, team: Team, my_role: MemberRole):
        self.id = team.id
        self.name = team.name
        self.captain_id = team.captain_id
        self.zone_id = team.zone_id
        self.logo_dna = team.logo_dna
        self.total_matches = team.total_matches
        self.status = team.status
        self.created_at = team.created_at
        self.my_role = my_role


def pick_card(user: User | None) -> Card | None:
    """
    Choose the card that represents a user on a roster.

    Only cards in the user's own collection are candidates. The user's own
    card (one picturing them) wins over cards of other players they hold;
    otherwise the oldest card is used.
    """
    if user is None or not user.cards:
        return None
    for card in user.cards:
        if card.is_self_card:
            return card
    return user.cards[0]


class RosterEntry:
    """One roster line: membership enriched with profile and card data."""

    def __init__(self, member: TeamMember, rules: TeamRules):
        user = member.user
        card = pick_card(user)
        stats = (card.stats if card else None) or {}

        self.user_id = member.user_id
        self.role = member.role
        self.joined_at = member.joined_at
        self.jersey_number = member.jersey_number
        self.reputation = user.reputation_score if user else None
        self.name = (card.display_name if card else None) or (user.username if user else None) or rules.unknown_name
        self.position = (card.position if card else None) or rules.unknown_position
        self.rating = stats.get("rating") or rules.default_rating
        self.visual = (card.visual_dna if card else None) or {}


# ==================== Service ====================


class TeamService:
    """Service for managing teams and their rosters."""

    def __init__(self, store: TeamStore, rules: TeamRules | None = None):
        self.store = store
        self.rules = rules or TeamRules.from_settings(get_settings())

    # ==================== Teams ====================

    async def check_name_availability(self, name: str, zone_id: int) -> bool:
        """
        Check whether a team name is already used in a zone.

        Returns:
            True if the name is taken, False if it is available

        Raises:
            NameCheckFailed: If the store could not be queried
        """
        try:
            existing = await self.store.find_one(Team, {"name": name, "zone_id": zone_id})
        except StoreError as e:
            logger.error(f"Name check for '{name}' in zone {zone_id} failed: {e}")
            raise NameCheckFailed() from e
        return existing is not None

    async def create_team(
        self,
        captain_id: uuid.UUID,
        name: str,
        zone_id: int,
        logo_dna: dict[str, Any] | None = None,
    ) -> Team:
        """
        Create a team in DRAFT with its captain as the only member.

        Two writes: the team row, then the captain membership. If the second
        write fails the team row is deleted again on a best-effort basis.
        Name uniqueness is not checked here; callers check availability first
        and the (name, zone_id) unique constraint backs that up.

        Raises:
            TeamNameTaken: If another team took the name in this zone first
            TeamCreationFailed: If the team row could not be written
            CaptainAssignmentFailed: If the captain membership could not be written
        """
        logger.info(f"Creating team '{name}' in zone {zone_id} for captain {captain_id}")

        try:
            team = await self.store.insert(
                Team,
                {
                    "name": name,
                    "captain_id": captain_id,
                    "zone_id": zone_id,
                    "logo_dna": logo_dna,
                    "total_matches": 0,
                    "status": TeamStatus.DRAFT,
                },
            )
        except StoreError as e:
            if e.conflict and await self._name_taken(name, zone_id):
                logger.info(f"Team name '{name}' in zone {zone_id} was taken concurrently")
                raise TeamNameTaken() from e
            logger.error(f"Team insert for '{name}' failed: {e}")
            raise TeamCreationFailed() from e

        # Read before the next write: a failed write rolls back and expires the row
        team_id = team.id

        try:
            await self.store.insert(
                TeamMember,
                {
                    "team_id": team_id,
                    "user_id": captain_id,
                    "role": MemberRole.CAPTAIN,
                    "jersey_number": self.rules.captain_jersey_number,
                },
            )
        except StoreError as e:
            logger.error(f"Captain assignment for team {team_id} failed: {e}")
            cleaned_up = await self._discard_team(team_id)
            raise CaptainAssignmentFailed(cleanup_failed=not cleaned_up) from e

        logger.info(f"Team {team_id} created with captain {captain_id}")
        return team

    async def _name_taken(self, name: str, zone_id: int) -> bool:
        """Tell a name collision apart from other constraint failures."""
        try:
            return await self.check_name_availability(name, zone_id)
        except NameCheckFailed:
            return False

    async def _discard_team(self, team_id: uuid.UUID) -> bool:
        """Compensating delete for a team whose captain could not be assigned."""
        try:
            await self.store.delete(Team, {"id": team_id})
        except StoreError as e:
            logger.error(f"Cleanup of orphaned team {team_id} failed: {e}", exc_info=True)
            return False
        logger.info(f"Orphaned team {team_id} removed")
        return True

    async def get_team(self, team_id: uuid.UUID) -> Team | None:
        """
        Get a team by ID.

        Raises:
            StoreUnavailable: If the store could not be queried
        """
        try:
            return await self.store.find_one(Team, {"id": team_id})
        except StoreError as e:
            raise StoreUnavailable() from e

    async def get_my_team(self, user_id: uuid.UUID, strict: bool = False) -> MyTeam | None:
        """
        Get the caller's team together with their role on it.

        Args:
            user_id: Calling user
            strict: Raise StoreUnavailable on lookup failure instead of
                returning None, for callers that must tell "no team" apart
                from "lookup failed"

        Returns:
            MyTeam, or None when the user has no membership
        """
        try:
            member = await self.store.find_one(
                TeamMember,
                {"user_id": user_id},
                joins=(selectinload(TeamMember.team),),
            )
        except StoreError as e:
            if strict:
                raise StoreUnavailable() from e
            logger.warning(f"Team lookup for user {user_id} failed: {e}")
            return None

        if member is None:
            return None
        return MyTeam(member.team, member.role)

    # ==================== Roster ====================

    async def get_team_roster(self, team_id: uuid.UUID) -> list[RosterEntry]:
        """
        Get a team's roster, oldest member first.

        Raises:
            RosterFetchFailed: If the store could not be queried
        """
        try:
            members = await self.store.find_joined(
                TeamMember,
                {"team_id": team_id},
                joins=(selectinload(TeamMember.user).selectinload(User.cards),),
                order_by=(TeamMember.joined_at.asc(), TeamMember.user_id.asc()),
            )
        except StoreError as e:
            logger.error(f"Roster fetch for team {team_id} failed: {e}")
            raise RosterFetchFailed() from e

        return [RosterEntry(member, self.rules) for member in members]

    # ==================== Membership ====================

    async def join_team(self, user_id: uuid.UUID, team_id: uuid.UUID) -> bool:
        """
        Join a team as a PLAYER.

        The capacity check is read-then-insert; concurrent joiners can both
        pass it. Activation uses a conditional update and is safe to race.

        Raises:
            AlreadyOnTeam: If the user already holds a membership
            TeamFull: If the team is at capacity
            JoinFailed: If the membership could not be written
        """
        if await self.get_my_team(user_id) is not None:
            raise AlreadyOnTeam()

        try:
            member_count = await self.store.count(TeamMember, {"team_id": team_id})
        except StoreError as e:
            logger.error(f"Member count for team {team_id} failed: {e}")
            raise JoinFailed() from e

        if member_count >= self.rules.max_members:
            raise TeamFull(f"This team is full ({self.rules.max_members} players)")

        try:
            await self.store.insert(
                TeamMember,
                {
                    "team_id": team_id,
                    "user_id": user_id,
                    "role": MemberRole.PLAYER,
                },
            )
        except StoreError as e:
            logger.error(f"User {user_id} failed to join team {team_id}: {e}")
            raise JoinFailed() from e

        logger.info(f"User {user_id} joined team {team_id}")

        if member_count + 1 >= self.rules.activation_threshold:
            await self._activate(team_id)

        return True

    async def _activate(self, team_id: uuid.UUID) -> None:
        """Move a DRAFT team to ACTIVE. Never fails the caller."""
        try:
            updated = await self.store.update(
                Team,
                {"id": team_id, "status": TeamStatus.DRAFT},
                {"status": TeamStatus.ACTIVE},
            )
        except StoreError as e:
            logger.warning(f"Activation of team {team_id} failed: {e}", exc_info=True)
            return
        if updated:
            logger.info(f"Team {team_id} is now ACTIVE")

    async def leave_team(self, user_id: uuid.UUID, team_id: uuid.UUID) -> bool:
        """
        Leave a team. The captain cannot leave.

        Raises:
            CaptainCannotLeave: If the caller is the team's captain
            LeaveFailed: If the caller is not on the team or the delete failed
        """
        try:
            member = await self.store.find_one(
                TeamMember, {"team_id": team_id, "user_id": user_id}
            )
        except StoreError as e:
            raise LeaveFailed() from e

        if member is None:
            raise LeaveFailed("You are not a member of this team", status.HTTP_404_NOT_FOUND)
        if member.role == MemberRole.CAPTAIN:
            raise CaptainCannotLeave()

        try:
            await self.store.delete(TeamMember, {"team_id": team_id, "user_id": user_id})
        except StoreError as e:
            logger.error(f"User {user_id} failed to leave team {team_id}: {e}")
            raise LeaveFailed() from e

        logger.info(f"User {user_id} left team {team_id}")
        return True

    # ==================== Captain Actions ====================

    async def _require_captain(
        self,
        captain_id: uuid.UUID,
        team_id: uuid.UUID,
        failure: type[TeamError],
    ) -> None:
        """Check the caller's persisted role rather than anything they claim."""
        try:
            member = await self.store.find_one(
                TeamMember, {"team_id": team_id, "user_id": captain_id}
            )
        except StoreError as e:
            raise failure() from e

        if member is None or member.role != MemberRole.CAPTAIN:
            logger.warning(f"User {captain_id} is not captain of team {team_id}")
            raise InsufficientPrivilege()

    async def kick_member(
        self,
        captain_id: uuid.UUID,
        team_id: uuid.UUID,
        member_id: uuid.UUID,
    ) -> bool:
        """
        Remove a member from the captain's team.

        Raises:
            InsufficientPrivilege: If the caller is not the team's captain
            CaptainCannotLeave: If the captain targets themselves
            KickFailed: If the store failed
        """
        await self._require_captain(captain_id, team_id, KickFailed)

        if member_id == captain_id:
            raise CaptainCannotLeave("The captain cannot be removed from the team")

        try:
            removed = await self.store.delete(
                TeamMember, {"team_id": team_id, "user_id": member_id}
            )
        except StoreError as e:
            logger.error(f"Kick of {member_id} from team {team_id} failed: {e}")
            raise KickFailed() from e

        if removed:
            logger.info(f"Captain {captain_id} removed {member_id} from team {team_id}")
        else:
            logger.info(f"Kick target {member_id} was not on team {team_id}")
        return True

    async def promote_member(
        self,
        captain_id: uuid.UUID,
        team_id: uuid.UUID,
        member_id: uuid.UUID,
    ) -> bool:
        """
        Promote a PLAYER to VICE captain.

        The update only matches PLAYER rows, so promoting the captain or an
        existing vice-captain changes nothing. Several VICEs may coexist.

        Raises:
            InsufficientPrivilege: If the caller is not the team's captain
            PromotionFailed: If the store failed
        """
        await self._require_captain(captain_id, team_id, PromotionFailed)

        try:
            updated = await self.store.update(
                TeamMember,
                {"team_id": team_id, "user_id": member_id, "role": MemberRole.PLAYER},
                {"role": MemberRole.VICE},
            )
        except StoreError as e:
            logger.error(f"Promotion of {member_id} on team {team_id} failed: {e}")
            raise PromotionFailed() from e

        if updated:
            logger.info(f"Captain {captain_id} promoted {member_id} to VICE on team {team_id}")
        return True
