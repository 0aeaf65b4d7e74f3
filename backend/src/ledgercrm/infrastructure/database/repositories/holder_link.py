"""HolderLink repository.

Unique violations on insert are raised as :class:`UniqueViolationError`
untouched; turning them into business errors is the job of the holder-link
constraint rules, which know the link type being written.
"""

from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from ledgercrm.domain.entities import HolderLink, LinkType, Page
from ledgercrm.infrastructure.database.mappers.base import utcnow
from ledgercrm.infrastructure.database.mappers.holder_link import HolderLinkMapper
from ledgercrm.infrastructure.database.mappers.patch import build_patch
from ledgercrm.infrastructure.database.models.holder_link import HolderLinkRecord
from ledgercrm.infrastructure.database.repositories.base import BaseRepository
from ledgercrm.shared.exceptions import HolderLinkNotFoundError, NotFoundError

HOLDER_LINK_REMOVABLE_FIELDS = frozenset({"metadata"})


class HolderLinkRepository(BaseRepository[HolderLinkRecord]):
    model_class = HolderLinkRecord
    entity_name = "HolderLink"

    def __init__(
        self,
        session: AsyncSession,
        organization_id: UUID | None = None,
        mapper: HolderLinkMapper | None = None,
    ) -> None:
        super().__init__(session, organization_id)
        self.mapper = mapper or HolderLinkMapper()

    def _not_found(self, identifier: UUID | str) -> NotFoundError:
        return HolderLinkNotFoundError(str(identifier))

    async def create(self, link: HolderLink) -> HolderLink:
        record = await self._insert(self.mapper.to_document(link))
        return self.mapper.to_entity(record)

    async def find(self, id: UUID, include_deleted: bool = False) -> HolderLink:
        record = await self._require_record(id, include_deleted)
        return self.mapper.to_entity(record)

    async def find_all(
        self,
        *,
        holder_id: UUID | None = None,
        alias_id: UUID | None = None,
        link_type: LinkType | None = None,
        metadata: Mapping[str, Any] | None = None,
        page: Page | None = None,
        include_deleted: bool = False,
    ) -> list[HolderLink]:
        model: Any = HolderLinkRecord
        conditions: list[ColumnElement[bool]] = []
        if holder_id is not None:
            conditions.append(model.holder_id == holder_id)
        if alias_id is not None:
            conditions.append(model.alias_id == alias_id)
        if link_type is not None:
            conditions.append(model.link_type == LinkType(link_type).value)
        conditions.extend(self._metadata_conditions(metadata or {}))
        records = await self._list_records(conditions, page, include_deleted)
        return [self.mapper.to_entity(record) for record in records]

    async def find_by_alias_id(
        self, alias_id: UUID, include_deleted: bool = False
    ) -> list[HolderLink]:
        return await self.find_all(alias_id=alias_id, include_deleted=include_deleted)

    async def find_by_holder_id(
        self, holder_id: UUID, include_deleted: bool = False
    ) -> list[HolderLink]:
        return await self.find_all(holder_id=holder_id, include_deleted=include_deleted)

    async def find_by_alias_id_and_link_type(
        self, alias_id: UUID, link_type: LinkType
    ) -> HolderLink | None:
        """Return the live link of this type for the alias, or None."""
        links = await self.find_all(alias_id=alias_id, link_type=link_type)
        return links[0] if links else None

    async def update(
        self,
        id: UUID,
        metadata: Mapping[str, Any] | None = None,
        fields_to_remove: Iterable[str] = (),
    ) -> HolderLink:
        document: dict[str, Any] = {"updated_at": utcnow()}
        if metadata is not None:
            document["metadata"] = dict(metadata)
        patch = build_patch(document, fields_to_remove, removable=HOLDER_LINK_REMOVABLE_FIELDS)
        record = await self._patch(id, patch)
        return self.mapper.to_entity(record)

    async def delete(self, id: UUID, hard_delete: bool = False, missing_ok: bool = False) -> None:
        await self._remove(id, hard_delete=hard_delete, missing_ok=missing_ok)
