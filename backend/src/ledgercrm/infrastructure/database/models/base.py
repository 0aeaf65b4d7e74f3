"""Base model and mixins for SQLAlchemy models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere. None is stored as SQL NULL.
JSONDocument = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")

# Partial-index predicate shared by every "unique among live rows" constraint
NOT_DELETED = "deleted_at IS NULL"


def live_rows_only(extra: str | None = None) -> dict[str, Any]:
    """Dialect kwargs for a partial index that skips soft-deleted rows."""
    condition = NOT_DELETED if extra is None else f"{NOT_DELETED} AND {extra}"
    return {
        "postgresql_where": text(condition),
        "sqlite_where": text(condition),
    }


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps.

    Mappers set both columns explicitly so a new row starts with
    created_at == updated_at; the server default only covers raw inserts.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """Mixin that adds soft delete support."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class TenantMixin:
    """Mixin that adds organization_id for multi-tenant isolation.

    IMPORTANT: All tenant-scoped models MUST include this mixin.
    Repositories MUST filter by organization_id automatically.
    """

    @declared_attr
    def organization_id(cls) -> Mapped[UUID]:
        return mapped_column(nullable=False, index=True)


class UUIDPrimaryKeyMixin:
    """Mixin that adds a UUID primary key."""

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=uuid4,
    )


class MetadataMixin:
    """Free-form metadata column.

    ``metadata`` is reserved on declarative classes, so the attribute is
    ``metadata_`` while the column keeps its natural name.
    """

    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONDocument, default=dict, nullable=False
    )
