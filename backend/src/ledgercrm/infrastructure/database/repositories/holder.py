"""Holder repository."""

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from ledgercrm.domain.entities import Holder, HolderQuery, HolderUpdate
from ledgercrm.infrastructure.database.conflicts import UniqueViolationError
from ledgercrm.infrastructure.database.mappers.holder import HolderMapper
from ledgercrm.infrastructure.database.models.holder import HOLDER_DOCUMENT_UNIQUE, HolderRecord
from ledgercrm.infrastructure.database.repositories.base import BaseRepository
from ledgercrm.shared.exceptions import (
    CRMError,
    HolderDocumentConflictError,
    HolderNotFoundError,
    NotFoundError,
)


class HolderRepository(BaseRepository[HolderRecord]):
    """Repository for holders. Reads return decrypted domain entities."""

    model_class = HolderRecord
    entity_name = "Holder"

    def __init__(
        self,
        session: AsyncSession,
        organization_id: UUID | None = None,
        mapper: HolderMapper | None = None,
    ) -> None:
        super().__init__(session, organization_id)
        self.mapper = mapper or HolderMapper()

    def _not_found(self, identifier: UUID | str) -> NotFoundError:
        return HolderNotFoundError(str(identifier))

    def _conflict(self, violation: UniqueViolationError) -> CRMError:
        if violation.constraint == HOLDER_DOCUMENT_UNIQUE or "search_document" in violation.columns:
            return HolderDocumentConflictError()
        return violation

    def _filter_conditions(self, query: HolderQuery) -> list[ColumnElement[bool]]:
        model: Any = HolderRecord
        conditions: list[ColumnElement[bool]] = []
        if query.external_id:
            conditions.append(model.external_id == query.external_id)
        if query.document:
            conditions.append(model.search_document == self.mapper.search_token(query.document))
        conditions.extend(self._metadata_conditions(query.metadata))
        return conditions

    async def create(self, holder: Holder) -> Holder:
        record = await self._insert(self.mapper.to_document(holder))
        return self.mapper.to_entity(record)

    async def find(self, id: UUID, include_deleted: bool = False) -> Holder:
        record = await self._require_record(id, include_deleted)
        return self.mapper.to_entity(record)

    async def find_all(self, query: HolderQuery, include_deleted: bool = False) -> list[Holder]:
        conditions = self._filter_conditions(query)
        records = await self._list_records(conditions, query.page, include_deleted)
        return [self.mapper.to_entity(record) for record in records]

    async def update(
        self,
        id: UUID,
        update: HolderUpdate,
        fields_to_remove: Iterable[str] = (),
    ) -> Holder:
        record = await self._patch(id, self.mapper.to_patch(update, fields_to_remove))
        return self.mapper.to_entity(record)

    async def delete(self, id: UUID, hard_delete: bool = False, missing_ok: bool = False) -> None:
        await self._remove(id, hard_delete=hard_delete, missing_ok=missing_ok)
