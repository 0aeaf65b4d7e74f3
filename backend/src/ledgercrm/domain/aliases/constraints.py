"""Holder-link uniqueness rules.

Per (alias, link type) a link is absent, present, or present as the primary
holder. Two rules apply to live (non-deleted) links:

- an alias has at most one PRIMARY_HOLDER link;
- an alias has at most one link of each type.

:meth:`HolderLinkConstraints.validate` checks them before a write to give a
clear error. It is not authoritative: two concurrent requests can both pass
it. The partial unique indexes on ``holder_links`` are the final arbiter, and
:meth:`HolderLinkConstraints.classify_write_conflict` maps their violations
back to the same business errors, so callers cannot tell which layer caught
the conflict.
"""

from uuid import UUID

from ledgercrm.domain.entities import HolderLink, LinkType
from ledgercrm.domain.ports import HolderLinkRepositoryPort
from ledgercrm.infrastructure.database.conflicts import UniqueViolationError
from ledgercrm.infrastructure.database.models.holder_link import (
    HOLDER_LINK_ALIAS_TYPE_UNIQUE,
    HOLDER_LINK_PRIMARY_UNIQUE,
)
from ledgercrm.observability.metrics import record_link_conflict
from ledgercrm.shared.exceptions import (
    ConflictError,
    DuplicateHolderLinkError,
    PrimaryHolderAlreadyExistsError,
)
from ledgercrm.shared.logging import get_logger

logger = get_logger(__name__)


def _conflict_for(alias_id: UUID, link_type: LinkType) -> ConflictError:
    if link_type == LinkType.PRIMARY_HOLDER:
        return PrimaryHolderAlreadyExistsError(str(alias_id))
    return DuplicateHolderLinkError(str(alias_id), link_type.value)


class HolderLinkConstraints:
    """Pre-write checks and post-write conflict classification for holder links."""

    def __init__(self, link_repo: HolderLinkRepositoryPort) -> None:
        self.link_repo = link_repo

    async def validate(self, alias_id: UUID, link_type: LinkType) -> None:
        """Refuse a link that would break a uniqueness rule.

        Raises:
            PrimaryHolderAlreadyExistsError: a live PRIMARY_HOLDER link exists
            DuplicateHolderLinkError: a live link of this type exists
        """
        existing = await self.link_repo.find_by_alias_id_and_link_type(alias_id, link_type)
        if existing is not None:
            record_link_conflict(link_type.value, "precheck")
            raise _conflict_for(alias_id, link_type)

    def classify_write_conflict(
        self, error: BaseException, *, alias_id: UUID, link_type: LinkType
    ) -> ConflictError | None:
        """Map a store rejection to a business conflict, or None if unrelated."""
        if not isinstance(error, UniqueViolationError):
            return None

        if error.constraint == HOLDER_LINK_PRIMARY_UNIQUE:
            return PrimaryHolderAlreadyExistsError(str(alias_id))
        if error.constraint == HOLDER_LINK_ALIAS_TYPE_UNIQUE:
            return _conflict_for(alias_id, link_type)

        if error.constraint is None:
            # No index identity available: fall back to the conflicting key columns
            if "link_type" in error.columns:
                return _conflict_for(alias_id, link_type)
            if "alias_id" in error.columns:
                return PrimaryHolderAlreadyExistsError(str(alias_id))
        return None

    async def create_link(self, link: HolderLink) -> HolderLink:
        """Insert a link, translating unique violations into business errors."""
        link_type = LinkType(link.link_type)
        try:
            return await self.link_repo.create(link)
        except UniqueViolationError as e:
            conflict = self.classify_write_conflict(e, alias_id=link.alias_id, link_type=link_type)
            if conflict is None:
                raise
            logger.info(
                "holder_link_conflict_at_write",
                alias_id=str(link.alias_id),
                link_type=link_type.value,
                constraint=e.constraint,
            )
            record_link_conflict(link_type.value, "unique_index")
            raise conflict from e
