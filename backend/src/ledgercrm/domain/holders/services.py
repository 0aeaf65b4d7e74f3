"""Holder service - core business logic."""

from collections.abc import Sequence
from uuid import UUID

from ledgercrm.domain.cascade import DeletionCascade
from ledgercrm.domain.entities import Holder, HolderQuery, HolderUpdate
from ledgercrm.domain.ports import (
    AliasRepositoryPort,
    HolderLinkRepositoryPort,
    HolderRepositoryPort,
)
from ledgercrm.shared.exceptions import ValidationError
from ledgercrm.shared.logging import get_logger
from ledgercrm.shared.metadata import validate_metadata

logger = get_logger(__name__)


class HolderService:
    """Service for holder operations.

    Handles CRUD for holders and the deletion cascade that removes a holder's
    links before the holder itself.
    """

    def __init__(
        self,
        holder_repo: HolderRepositoryPort,
        alias_repo: AliasRepositoryPort,
        link_repo: HolderLinkRepositoryPort,
    ) -> None:
        self.holder_repo = holder_repo
        self.cascade = DeletionCascade(holder_repo, alias_repo, link_repo)

    async def create_holder(self, holder: Holder) -> Holder:
        """Create a new holder. The document must be unique within the organization."""
        if not holder.name or not holder.name.strip():
            raise ValidationError("Holder name is required.", {"field": "name"})
        if not holder.document or not holder.document.strip():
            raise ValidationError("Holder document is required.", {"field": "document"})
        validate_metadata(holder.metadata)

        created = await self.holder_repo.create(holder)
        logger.info("holder_created", holder_id=str(created.id), holder_type=created.type.value)
        return created

    async def get_holder(self, holder_id: UUID, include_deleted: bool = False) -> Holder:
        return await self.holder_repo.find(holder_id, include_deleted)

    async def list_holders(
        self, query: HolderQuery, include_deleted: bool = False
    ) -> Sequence[Holder]:
        return await self.holder_repo.find_all(query, include_deleted)

    async def update_holder(
        self,
        holder_id: UUID,
        update: HolderUpdate,
        fields_to_remove: Sequence[str] = (),
    ) -> Holder:
        if update.name is not None and not update.name.strip():
            raise ValidationError("Holder name cannot be blank.", {"field": "name"})
        validate_metadata(update.metadata)

        holder = await self.holder_repo.update(holder_id, update, fields_to_remove)
        logger.info("holder_updated", holder_id=str(holder_id), removed=list(fields_to_remove))
        return holder

    async def delete_holder(self, holder_id: UUID, hard_delete: bool = False) -> None:
        """Delete a holder that has no live aliases.

        Raises:
            HolderNotFoundError: holder does not exist
            HolderHasAliasesError: holder still owns at least one alias
        """
        await self.holder_repo.find(holder_id)
        await self.cascade.delete_holder(holder_id, hard_delete=hard_delete)
