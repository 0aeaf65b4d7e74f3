"""Deletion ordering across holders, aliases and holder links.

Links are always removed before the alias or holder they point at, and the
caller's soft/hard choice is applied to every record in the cascade.
"""

from uuid import UUID

from ledgercrm.domain.entities import LINK_TYPE_PRIORITY, HolderLink
from ledgercrm.domain.ports import (
    AliasRepositoryPort,
    HolderLinkRepositoryPort,
    HolderRepositoryPort,
)
from ledgercrm.observability.metrics import record_cascade_deletion
from ledgercrm.shared.exceptions import HolderHasAliasesError, HolderLinkNotFoundError
from ledgercrm.shared.logging import get_logger

logger = get_logger(__name__)


def _deletion_order(link: HolderLink) -> int:
    return LINK_TYPE_PRIORITY.index(link.link_type)


class DeletionCascade:
    def __init__(
        self,
        holder_repo: HolderRepositoryPort,
        alias_repo: AliasRepositoryPort,
        link_repo: HolderLinkRepositoryPort,
    ) -> None:
        self.holder_repo = holder_repo
        self.alias_repo = alias_repo
        self.link_repo = link_repo

    async def delete_alias(self, alias_id: UUID, *, hard_delete: bool = False) -> None:
        """Delete an alias's links (primary holder first), then the alias.

        An alias without any live link is already inconsistent and is refused
        with HolderLinkNotFoundError.
        """
        links = await self.link_repo.find_by_alias_id(alias_id)
        if not links:
            raise HolderLinkNotFoundError(str(alias_id))

        for link in sorted(links, key=_deletion_order):
            await self.link_repo.delete(link.id, hard_delete=hard_delete)
            record_cascade_deletion("holder_link", hard_delete)
            logger.info(
                "holder_link_deleted",
                holder_link_id=str(link.id),
                alias_id=str(alias_id),
                hard_delete=hard_delete,
            )

        await self.alias_repo.delete(alias_id, hard_delete=hard_delete)
        record_cascade_deletion("alias", hard_delete)
        logger.info("alias_deleted", alias_id=str(alias_id), hard_delete=hard_delete)

    async def delete_holder(self, holder_id: UUID, *, hard_delete: bool = False) -> None:
        """Delete a holder that owns no live alias, removing its links first.

        Every link is attempted even if one fails; the first failure is raised
        once all links were tried, and the holder itself is then left intact.
        """
        alias_count = await self.alias_repo.count_by_holder(holder_id)
        if alias_count > 0:
            raise HolderHasAliasesError(str(holder_id), alias_count)

        first_error: Exception | None = None
        for link in await self.link_repo.find_by_holder_id(holder_id):
            try:
                await self.link_repo.delete(link.id, hard_delete=hard_delete)
                record_cascade_deletion("holder_link", hard_delete)
            except Exception as e:
                logger.error(
                    "holder_link_delete_failed",
                    holder_id=str(holder_id),
                    holder_link_id=str(link.id),
                    error_type=type(e).__name__,
                )
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

        await self.holder_repo.delete(holder_id, hard_delete=hard_delete)
        record_cascade_deletion("holder", hard_delete)
        logger.info("holder_deleted", holder_id=str(holder_id), hard_delete=hard_delete)
