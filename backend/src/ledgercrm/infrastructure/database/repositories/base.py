"""Base repository with tenant isolation."""

from collections.abc import AsyncIterator, Iterator, Mapping, Sequence
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Generic, TypeVar, cast
from uuid import UUID

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgercrm.domain.entities import Page
from ledgercrm.infrastructure.database.conflicts import UniqueViolationError, as_unique_violation
from ledgercrm.infrastructure.database.mappers.base import utcnow
from ledgercrm.infrastructure.database.mappers.patch import Patch, apply_patch, new_record
from ledgercrm.shared.context import get_tenant_context
from ledgercrm.shared.exceptions import CRMError, NotFoundError, PersistenceError
from ledgercrm.shared.metadata import validate_metadata_filter


R = TypeVar("R")


class BaseRepository(Generic[R]):
    """Base repository with automatic tenant filtering.

    IMPORTANT: This base class ensures all queries are filtered by
    organization_id, preventing cross-tenant data access.

    Every write runs in its own SAVEPOINT. A rejected write is rolled back
    alone and the session stays usable, so callers can run compensating
    writes on the same session.
    """

    model_class: type[R]
    entity_name = "Entity"

    def __init__(self, session: AsyncSession, organization_id: UUID | None = None) -> None:
        self.session = session
        self._organization_id = organization_id

    def _get_organization_id(self) -> UUID:
        """Get the tenant this repository is scoped to."""
        if self._organization_id is not None:
            return self._organization_id
        return get_tenant_context().organization_id

    def _not_found(self, identifier: UUID | str) -> NotFoundError:
        return NotFoundError(self.entity_name, str(identifier))

    def _conflict(self, violation: UniqueViolationError) -> CRMError:
        """Map a unique violation to a business error. Subclasses refine this."""
        return violation

    def _base_query(self, include_deleted: bool = False) -> Any:
        """Create a base query filtered by tenant and soft-delete status.

        All queries should start from this method to ensure tenant isolation.

        Args:
            include_deleted: If True, includes soft-deleted records (default: False)
        """
        model = cast(Any, self.model_class)
        query = select(model).where(model.organization_id == self._get_organization_id())
        if not include_deleted:
            query = query.where(model.deleted_at.is_(None))
        return query

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        """Wrap driver failures with the entity and operation that hit them."""
        try:
            yield
        except IntegrityError as e:
            violation = as_unique_violation(e, entity=self.entity_name, operation=operation)
            if violation is None:
                raise PersistenceError(
                    f"{self.entity_name} {operation} rejected by the store",
                    entity=self.entity_name,
                    operation=operation,
                ) from e
            raise self._conflict(violation) from e
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"{self.entity_name} {operation} failed",
                entity=self.entity_name,
                operation=operation,
            ) from e

    @asynccontextmanager
    async def begin_nested(self) -> AsyncIterator[None]:
        """Begin a nested transaction scope for a single write."""
        async with self.session.begin_nested():
            yield

    async def _get_record(self, id: UUID, include_deleted: bool = False) -> R | None:
        model = cast(Any, self.model_class)
        with self._store_errors("find"):
            result = await self.session.execute(
                self._base_query(include_deleted).where(model.id == id)
            )
            return result.scalar_one_or_none()

    async def _require_record(self, id: UUID, include_deleted: bool = False) -> R:
        record = await self._get_record(id, include_deleted)
        if record is None:
            raise self._not_found(id)
        return record

    async def _list_records(
        self,
        conditions: Sequence[ColumnElement[bool]],
        page: Page | None = None,
        include_deleted: bool = False,
    ) -> Sequence[R]:
        model = cast(Any, self.model_class)
        query = self._base_query(include_deleted).where(*conditions)
        if page is not None:
            ordering = model.created_at.asc()
            if page.sort_order == "desc":
                ordering = model.created_at.desc()
            query = query.order_by(ordering, model.id).limit(page.limit).offset(page.offset)
        else:
            query = query.order_by(model.created_at.asc(), model.id)
        with self._store_errors("find_all"):
            result = await self.session.execute(query)
            return result.scalars().all()

    def _metadata_conditions(self, filters: Mapping[str, Any]) -> list[ColumnElement[bool]]:
        """Equality predicates on metadata sub-keys (``{"tier": "gold"}``)."""
        column = cast(Any, self.model_class).metadata_
        conditions: list[ColumnElement[bool]] = []
        for path, value in validate_metadata_filter(filters).items():
            keys = tuple(path.split("."))
            element = column[keys] if len(keys) > 1 else column[keys[0]]
            if isinstance(value, bool):
                conditions.append(element.as_boolean() == value)
            elif isinstance(value, int):
                conditions.append(element.as_integer() == value)
            elif isinstance(value, float):
                conditions.append(element.as_float() == value)
            else:
                conditions.append(element.as_string() == value)
        return conditions

    async def _count(self, conditions: Sequence[ColumnElement[bool]]) -> int:
        query = select(func.count()).select_from(self._base_query().where(*conditions).subquery())
        with self._store_errors("count"):
            result = await self.session.execute(query)
            return result.scalar_one()

    async def _insert(self, document: Mapping[str, Any]) -> R:
        """Insert a new record. organization_id always comes from the repository scope."""
        record = new_record(self.model_class, document)
        cast(Any, record).organization_id = self._get_organization_id()
        with self._store_errors("create"):
            async with self.begin_nested():
                self.session.add(record)
                await self.session.flush()
        return record

    async def _patch(self, id: UUID, patch: Patch) -> R:
        record = await self._require_record(id)
        if not patch:
            return record
        with self._store_errors("update"):
            async with self.begin_nested():
                apply_patch(record, patch)
                await self.session.flush()
        return record

    async def _remove(self, id: UUID, hard_delete: bool = False, missing_ok: bool = False) -> None:
        """Soft delete (default) or physically remove a record.

        A hard delete also reaches soft-deleted rows. With ``missing_ok`` an
        absent record is not an error, which makes compensation idempotent.
        """
        record = await self._get_record(id, include_deleted=hard_delete)
        if record is None:
            if missing_ok:
                return
            raise self._not_found(id)

        with self._store_errors("delete"):
            async with self.begin_nested():
                if hard_delete:
                    await self.session.delete(record)
                else:
                    now = utcnow()
                    record_any = cast(Any, record)
                    record_any.deleted_at = now
                    record_any.updated_at = now
                await self.session.flush()
