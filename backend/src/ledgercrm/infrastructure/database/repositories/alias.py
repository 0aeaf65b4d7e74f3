"""Alias repository."""

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from ledgercrm.domain.entities import Alias, AliasQuery, AliasUpdate
from ledgercrm.infrastructure.database.conflicts import UniqueViolationError
from ledgercrm.infrastructure.database.mappers.alias import AliasMapper
from ledgercrm.infrastructure.database.models.alias import (
    ALIAS_ACCOUNT_UNIQUE,
    ALIAS_LEDGER_ACCOUNT_UNIQUE,
    AliasRecord,
)
from ledgercrm.infrastructure.database.repositories.base import BaseRepository
from ledgercrm.shared.exceptions import (
    AccountAlreadyAssociatedError,
    AliasNotFoundError,
    CRMError,
    NotFoundError,
    RelatedPartyNotFoundError,
)
from ledgercrm.shared.logging import get_logger

logger = get_logger(__name__)


class AliasRepository(BaseRepository[AliasRecord]):
    """Repository for aliases. Reads return decrypted domain entities."""

    model_class = AliasRecord
    entity_name = "Alias"

    def __init__(
        self,
        session: AsyncSession,
        organization_id: UUID | None = None,
        mapper: AliasMapper | None = None,
    ) -> None:
        super().__init__(session, organization_id)
        self.mapper = mapper or AliasMapper()

    def _not_found(self, identifier: UUID | str) -> NotFoundError:
        return AliasNotFoundError(str(identifier))

    def _conflict(self, violation: UniqueViolationError) -> CRMError:
        if violation.constraint in (ALIAS_ACCOUNT_UNIQUE, ALIAS_LEDGER_ACCOUNT_UNIQUE):
            return AccountAlreadyAssociatedError()
        if violation.constraint is None and "account_id" in violation.columns:
            return AccountAlreadyAssociatedError()
        return violation

    def _filter_conditions(self, query: AliasQuery) -> list[ColumnElement[bool]]:
        """Equality filters. Sensitive values are matched through their search tokens."""
        model: Any = AliasRecord
        conditions: list[ColumnElement[bool]] = []
        if query.holder_id is not None:
            conditions.append(model.holder_id == query.holder_id)
        if query.account_id:
            conditions.append(model.account_id == query.account_id)
        if query.ledger_id:
            conditions.append(model.ledger_id == query.ledger_id)
        if query.document:
            conditions.append(model.search_document == self.mapper.search_token(query.document))
        if query.banking_details_branch:
            conditions.append(
                model.banking_details["branch"].as_string() == query.banking_details_branch
            )
        if query.banking_details_account:
            conditions.append(
                model.search_banking_details_account
                == self.mapper.search_token(query.banking_details_account)
            )
        if query.banking_details_iban:
            conditions.append(
                model.search_banking_details_iban
                == self.mapper.search_token(query.banking_details_iban)
            )
        conditions.extend(self._metadata_conditions(query.metadata))
        return conditions

    async def create(self, alias: Alias) -> Alias:
        record = await self._insert(self.mapper.to_document(alias))
        logger.info("alias_record_created", alias_id=str(record.id))
        return self.mapper.to_entity(record)

    async def find(self, id: UUID, include_deleted: bool = False) -> Alias:
        record = await self._require_record(id, include_deleted)
        return self.mapper.to_entity(record)

    async def find_all(self, query: AliasQuery, include_deleted: bool = False) -> list[Alias]:
        conditions = self._filter_conditions(query)
        records = await self._list_records(conditions, query.page, include_deleted)
        return [self.mapper.to_entity(record) for record in records]

    async def update(
        self,
        id: UUID,
        update: AliasUpdate,
        fields_to_remove: Iterable[str] = (),
    ) -> Alias:
        patch = self.mapper.to_patch(update, fields_to_remove)
        record = await self._patch(id, patch)
        return self.mapper.to_entity(record)

    async def delete(self, id: UUID, hard_delete: bool = False, missing_ok: bool = False) -> None:
        await self._remove(id, hard_delete=hard_delete, missing_ok=missing_ok)

    async def count_by_holder(self, holder_id: UUID) -> int:
        """Count non-deleted aliases owned by a holder."""
        return await self._count([AliasRecord.holder_id == holder_id])

    async def delete_related_party(self, alias_id: UUID, related_party_id: UUID) -> Alias:
        """Remove one related party and rebuild the related-party search tokens."""
        alias = await self.find(alias_id)
        remaining = [party for party in alias.related_parties if party.id != related_party_id]
        if len(remaining) == len(alias.related_parties):
            raise RelatedPartyNotFoundError(str(related_party_id))
        return await self.update(alias_id, AliasUpdate(related_parties=remaining))
