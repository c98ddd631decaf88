"""
Team Store Tests for Teamsheet.

Covers the data-access contract against SQLite and the translation of
driver failures into StoreError.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.models import Card, MemberRole, Team, TeamMember, TeamStatus
from app.services.team_store import StoreError, TeamStore


async def insert_team(store, captain_id, name="Falcons", zone_id=3):
    return await store.insert(
        Team,
        {"name": name, "zone_id": zone_id, "captain_id": captain_id, "status": TeamStatus.DRAFT},
    )


class TestReads:
    """Tests for find_one, count and find_joined."""

    @pytest.mark.asyncio
    async def test_find_one(self, store, users):
        team = await insert_team(store, users[0])

        found = await store.find_one(Team, {"name": "Falcons", "zone_id": 3})
        missing = await store.find_one(Team, {"name": "Falcons", "zone_id": 4})

        assert found.id == team.id
        assert missing is None

    @pytest.mark.asyncio
    async def test_find_one_with_several_matches_fails(self, store, mint_card, users):
        await mint_card(users[0])
        await mint_card(users[0], subject_id=users[1])

        with pytest.raises(StoreError) as exc_info:
            await store.find_one(Card, {"owner_id": users[0]})

        assert exc_info.value.operation == "find_one"
        assert exc_info.value.table == "cards"

    @pytest.mark.asyncio
    async def test_count(self, store, users):
        team = await insert_team(store, users[0])
        for user_id in users[:3]:
            await store.insert(TeamMember, {"team_id": team.id, "user_id": user_id})

        assert await store.count(TeamMember, {"team_id": team.id}) == 3
        assert await store.count(TeamMember, {"team_id": uuid.uuid4()}) == 0

    @pytest.mark.asyncio
    async def test_find_joined_orders_rows(self, store, users):
        await insert_team(store, users[0], name="Bravo")
        await insert_team(store, users[1], name="Alpha")
        await insert_team(store, users[2], name="Charlie", zone_id=9)

        rows = await store.find_joined(Team, {"zone_id": 3}, order_by=(Team.name.asc(),))

        assert [row.name for row in rows] == ["Alpha", "Bravo"]


class TestWrites:
    """Tests for insert, update and delete."""

    @pytest.mark.asyncio
    async def test_insert_fills_defaults(self, store, users):
        team = await insert_team(store, users[0])

        assert isinstance(team.id, uuid.UUID)
        assert team.created_at is not None
        assert team.total_matches == 0

        member = await store.insert(TeamMember, {"team_id": team.id, "user_id": users[0]})
        assert member.role == MemberRole.PLAYER
        assert member.joined_at is not None

    @pytest.mark.asyncio
    async def test_conditional_update_reports_matches(self, store, users):
        team = await insert_team(store, users[0])
        filters = {"id": team.id, "status": TeamStatus.DRAFT}
        patch = {"status": TeamStatus.ACTIVE}

        assert await store.update(Team, filters, patch) == 1
        assert await store.update(Team, filters, patch) == 0

        refreshed = await store.find_one(Team, {"id": team.id})
        assert refreshed.status == TeamStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_delete_reports_removed_rows(self, store, users):
        team = await insert_team(store, users[0])

        assert await store.delete(Team, {"id": team.id}) == 1
        assert await store.delete(Team, {"id": team.id}) == 0
        assert await store.find_one(Team, {"id": team.id}) is None

    @pytest.mark.asyncio
    async def test_constraint_violation_keeps_session_usable(self, store, users):
        """Earlier rows are expired by the rollback; ids read up front stay valid."""
        team = await insert_team(store, users[0])
        team_id = team.id
        await store.insert(TeamMember, {"team_id": team_id, "user_id": users[1]})

        with pytest.raises(StoreError) as exc_info:
            await store.insert(TeamMember, {"team_id": team_id, "user_id": users[1]})

        assert exc_info.value.operation == "insert"
        assert exc_info.value.table == "team_members"
        assert await store.count(TeamMember, {"team_id": team_id}) == 1

        refetched = await store.find_one(Team, {"id": team_id})
        assert refetched.name == "Falcons"

    @pytest.mark.asyncio
    async def test_one_membership_per_user(self, store, users):
        first = await insert_team(store, users[0], name="First")
        second = await insert_team(store, users[1], name="Second")
        await store.insert(TeamMember, {"team_id": first.id, "user_id": users[2]})

        with pytest.raises(StoreError) as exc_info:
            await store.insert(TeamMember, {"team_id": second.id, "user_id": users[2]})

        assert exc_info.value.conflict is True

    @pytest.mark.asyncio
    async def test_team_name_unique_per_zone(self, store, users):
        await insert_team(store, users[0])

        with pytest.raises(StoreError) as exc_info:
            await insert_team(store, users[1])

        assert exc_info.value.conflict is True

        other_zone = await insert_team(store, users[1], zone_id=4)
        assert other_zone.name == "Falcons"


class TestDriverFailures:
    """Tests for failures raised by the session itself."""

    @pytest.fixture
    def broken_session(self):
        session = MagicMock()
        session.execute = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("db down"))
        )
        session.rollback = AsyncMock()
        return session

    @pytest.mark.asyncio
    async def test_read_failure_is_wrapped(self, broken_session):
        store = TeamStore(broken_session)

        with pytest.raises(StoreError) as exc_info:
            await store.count(TeamMember, {"team_id": uuid.uuid4()})

        assert exc_info.value.operation == "count"
        assert "OperationalError" in exc_info.value.message
        assert exc_info.value.conflict is False
        assert isinstance(exc_info.value.__cause__, OperationalError)
        broken_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_rollback_still_reports_original(self, broken_session):
        broken_session.rollback.side_effect = OperationalError("ROLLBACK", {}, Exception("gone"))
        store = TeamStore(broken_session)

        with pytest.raises(StoreError) as exc_info:
            await store.update(Team, {"id": uuid.uuid4()}, {"total_matches": 1})

        assert exc_info.value.operation == "update"
        assert exc_info.value.table == "teams"

    @pytest.mark.asyncio
    async def test_non_database_errors_pass_through(self):
        session = MagicMock()
        session.execute = AsyncMock(side_effect=ValueError("bad filter"))
        session.rollback = AsyncMock()
        store = TeamStore(session)

        with pytest.raises(ValueError):
            await store.find_one(Team, {"id": uuid.uuid4()})

        session.rollback.assert_not_awaited()
