"""
Declarative base and shared column mixins for the Teamsheet models.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time used for column defaults."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    # JSON columns are JSONB on PostgreSQL and plain JSON elsewhere (SQLite in tests)
    type_annotation_map = {
        dict[str, Any]: JSON().with_variant(JSONB, "postgresql"),
    }


class IdentityMixin:
    """Store-generated UUID primary key plus creation timestamp."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
