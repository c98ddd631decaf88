"""
Team Store for Teamsheet.

Narrow, table-scoped data-access contract the membership service talks to.
Every round-trip either succeeds or raises StoreError; raw SQLAlchemy
exceptions never leave this module. Writes commit immediately, so each
call is its own transaction. Reads always refresh rows already held by
the session.

A failed round-trip rolls the session back, which expires every row the
session holds, including rows returned by earlier successful calls. Read
any attribute you still need (ids in particular) before the next call
that may fail, or fetch the row again afterwards.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Sequence, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.interfaces import ORMOption

from app.models.base import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class StoreError(Exception):
    """A store round-trip failed."""

    def __init__(self, message: str, operation: str, table: str, conflict: bool = False):
        self.message = message
        self.operation = operation
        self.table = table
        # True when a store constraint rejected the write
        self.conflict = conflict
        super().__init__(self.message)


def _criteria(model: type[Base], filters: dict[str, Any]) -> list[Any]:
    """Build equality predicates from a column -> value mapping."""
    return [getattr(model, column) == value for column, value in filters.items()]


class TeamStore:
    """Async data-access handle over a single session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _round_trip(self, operation: str, model: type[Base]) -> AsyncIterator[None]:
        """Translate driver/ORM failures into StoreError, leaving the session usable."""
        table = model.__tablename__
        try:
            yield
        except SQLAlchemyError as e:
            logger.debug(f"Store {operation} on {table} failed: {e}")
            try:
                await self.session.rollback()
            except SQLAlchemyError:
                logger.warning(f"Rollback after failed {operation} on {table} also failed", exc_info=True)
            raise StoreError(
                f"{operation} on {table} failed ({e.__class__.__name__})",
                operation=operation,
                table=table,
                conflict=isinstance(e, IntegrityError),
            ) from e

    # ==================== Reads ====================

    async def find_one(
        self,
        model: type[ModelT],
        filters: dict[str, Any],
        joins: Sequence[ORMOption] = (),
    ) -> ModelT | None:
        """
        Return the single row matching filters, or None when nothing matches.

        More than one match is a failure, not a pick.
        """
        async with self._round_trip("find_one", model):
            result = await self.session.execute(
                select(model)
                .where(*_criteria(model, filters))
                .options(*joins)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def count(self, model: type[Base], filters: dict[str, Any]) -> int:
        """Count rows matching filters."""
        async with self._round_trip("count", model):
            result = await self.session.execute(
                select(func.count()).select_from(model).where(*_criteria(model, filters))
            )
            return result.scalar_one()

    async def find_joined(
        self,
        model: type[ModelT],
        filters: dict[str, Any],
        joins: Sequence[ORMOption] = (),
        order_by: Sequence[Any] = (),
    ) -> list[ModelT]:
        """
        Return all rows matching filters with related rows eagerly loaded.

        Args:
            model: Root table
            filters: Column equality filters on the root table
            joins: Loader options describing the related rows to pull in
            order_by: Ordering clauses applied to the root table

        Returns:
            Ordered list of root rows
        """
        async with self._round_trip("find_joined", model):
            result = await self.session.execute(
                select(model)
                .where(*_criteria(model, filters))
                .options(*joins)
                .order_by(*order_by)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    # ==================== Writes ====================

    async def insert(self, model: type[ModelT], values: dict[str, Any]) -> ModelT:
        """Insert one row and return it with store-generated fields populated."""
        async with self._round_trip("insert", model):
            row = model(**values)
            self.session.add(row)
            await self.session.commit()
            await self.session.refresh(row)
            return row

    async def update(
        self,
        model: type[Base],
        filters: dict[str, Any],
        patch: dict[str, Any],
    ) -> int:
        """
        Apply patch to every row matching filters.

        Filters double as the precondition of a conditional update; the
        return value is the number of rows that matched.
        """
        async with self._round_trip("update", model):
            result = await self.session.execute(
                update(model).where(*_criteria(model, filters)).values(**patch)
            )
            await self.session.commit()
            return result.rowcount

    async def delete(self, model: type[Base], filters: dict[str, Any]) -> int:
        """Delete every row matching filters and return how many went."""
        async with self._round_trip("delete", model):
            result = await self.session.execute(
                delete(model).where(*_criteria(model, filters))
            )
            await self.session.commit()
            return result.rowcount
