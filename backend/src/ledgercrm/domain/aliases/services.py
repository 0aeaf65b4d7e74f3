"""Alias service - core business logic.

Creating or relinking an alias writes two records (the alias and a holder
link) without a shared transaction. Both paths run as a :class:`Saga`:

Create with a link request
    1. validate input and link type (no writes yet)
    2. insert the alias                 -> undo: hard delete alias
    3. pre-check link uniqueness
    4. insert the link                  -> undo: hard delete link
    5. store the link reference on the alias
    6. read back the alias with its links

Update with a link request
    The same steps minus 2; the pre-existing alias is never deleted, only
    the new link is undone if the alias update fails.
"""

from collections.abc import Sequence
from dataclasses import replace
from uuid import UUID

from ledgercrm.domain.aliases.constraints import HolderLinkConstraints
from ledgercrm.domain.aliases.validation import (
    parse_link_type,
    validate_closing_date,
    validate_related_parties,
)
from ledgercrm.domain.cascade import DeletionCascade
from ledgercrm.domain.entities import (
    Alias,
    AliasQuery,
    AliasUpdate,
    HolderLink,
    LinkType,
)
from ledgercrm.domain.ports import (
    AliasRepositoryPort,
    HolderLinkRepositoryPort,
    HolderRepositoryPort,
)
from ledgercrm.domain.saga import Saga
from ledgercrm.infrastructure.database.mappers.base import utcnow
from ledgercrm.shared.exceptions import AliasNotFoundError
from ledgercrm.shared.logging import get_logger
from ledgercrm.shared.metadata import validate_metadata

logger = get_logger(__name__)


class AliasService:
    """Service for alias operations and their holder links."""

    def __init__(
        self,
        alias_repo: AliasRepositoryPort,
        holder_repo: HolderRepositoryPort,
        link_repo: HolderLinkRepositoryPort,
    ) -> None:
        self.alias_repo = alias_repo
        self.holder_repo = holder_repo
        self.link_repo = link_repo
        self.constraints = HolderLinkConstraints(link_repo)
        self.cascade = DeletionCascade(holder_repo, alias_repo, link_repo)

    # ----- Reads -----

    async def _with_links(self, alias: Alias) -> Alias:
        """Attach the alias's live holder links (derived, never stored)."""
        alias.holder_links = await self.link_repo.find_by_alias_id(alias.id)
        return alias

    async def _owned_alias(
        self, holder_id: UUID, alias_id: UUID, include_deleted: bool = False
    ) -> Alias:
        alias = await self.alias_repo.find(alias_id, include_deleted)
        if alias.holder_id != holder_id:
            raise AliasNotFoundError(str(alias_id))
        return alias

    async def get_alias(
        self, holder_id: UUID, alias_id: UUID, include_deleted: bool = False
    ) -> Alias:
        alias = await self._owned_alias(holder_id, alias_id, include_deleted)
        return await self._with_links(alias)

    async def list_aliases(
        self, query: AliasQuery, include_deleted: bool = False
    ) -> Sequence[Alias]:
        aliases = await self.alias_repo.find_all(query, include_deleted)
        return [await self._with_links(alias) for alias in aliases]

    # ----- Writes -----

    async def create_alias(
        self,
        holder_id: UUID,
        alias: Alias,
        link_type: str | LinkType | None = None,
    ) -> Alias:
        """Create an alias for a holder, optionally linking the holder to it.

        The alias inherits the holder's document and type.

        Raises:
            HolderNotFoundError: holder does not exist
            InvalidLinkTypeError / ValidationError: bad input, nothing written
            AccountAlreadyAssociatedError: account already bound to an alias
            PrimaryHolderAlreadyExistsError / DuplicateHolderLinkError:
                link conflict, the alias is rolled back
        """
        requested_link = parse_link_type(link_type) if link_type is not None else None
        validate_related_parties(alias.related_parties)
        validate_closing_date(alias.banking_details, utcnow().date())
        validate_metadata(alias.metadata)

        holder = await self.holder_repo.find(holder_id)
        alias.holder_id = holder.id
        alias.document = holder.document
        alias.type = holder.type

        async with Saga("create_alias", holder_id=str(holder_id)) as saga:
            created = await self.alias_repo.create(alias)
            saga.bind(alias_id=str(created.id))
            saga.on_failure(
                "hard_delete_alias",
                lambda: self.alias_repo.delete(created.id, hard_delete=True, missing_ok=True),
            )

            if requested_link is not None:
                link = await self._attach_link(saga, created.id, holder.id, requested_link)
                created = await self.alias_repo.update(
                    created.id, AliasUpdate(holder_link_id=link.id)
                )

        logger.info(
            "alias_created",
            alias_id=str(created.id),
            holder_id=str(holder_id),
            link_type=requested_link.value if requested_link else None,
        )
        return await self._with_links(created)

    async def update_alias(
        self,
        holder_id: UUID,
        alias_id: UUID,
        update: AliasUpdate,
        fields_to_remove: Sequence[str] = (),
        *,
        link_type: str | LinkType | None = None,
        link_holder_id: UUID | None = None,
    ) -> Alias:
        """Partially update an alias and optionally attach a new holder link.

        ``link_holder_id`` selects the holder on the new link; it defaults to
        the alias's own holder. If the alias update fails after the link was
        written, the link is removed again; the alias itself is never deleted.
        """
        requested_link = parse_link_type(link_type) if link_type is not None else None
        if update.related_parties is not None:
            validate_related_parties(update.related_parties)
        validate_metadata(update.metadata)

        alias = await self._owned_alias(holder_id, alias_id)
        if alias.created_at is not None:
            validate_closing_date(update.banking_details, alias.created_at.date())

        if requested_link is None:
            updated = await self.alias_repo.update(alias_id, update, fields_to_remove)
        else:
            link_holder = await self.holder_repo.find(link_holder_id or alias.holder_id)
            async with Saga("relink_alias", alias_id=str(alias_id)) as saga:
                link = await self._attach_link(saga, alias_id, link_holder.id, requested_link)
                updated = await self.alias_repo.update(
                    alias_id, replace(update, holder_link_id=link.id), fields_to_remove
                )

        logger.info(
            "alias_updated",
            alias_id=str(alias_id),
            link_type=requested_link.value if requested_link else None,
        )
        return await self._with_links(updated)

    async def _attach_link(
        self, saga: Saga, alias_id: UUID, holder_id: UUID, link_type: LinkType
    ) -> HolderLink:
        """Saga steps 3-4: pre-check, then insert the link and register its undo."""
        await self.constraints.validate(alias_id, link_type)
        link = await self.constraints.create_link(
            HolderLink(holder_id=holder_id, alias_id=alias_id, link_type=link_type)
        )
        saga.on_failure(
            "hard_delete_holder_link",
            lambda: self.link_repo.delete(link.id, hard_delete=True, missing_ok=True),
        )
        logger.info(
            "holder_link_created",
            holder_link_id=str(link.id),
            alias_id=str(alias_id),
            link_type=link_type.value,
        )
        return link

    async def delete_alias(
        self, holder_id: UUID, alias_id: UUID, hard_delete: bool = False
    ) -> None:
        await self._owned_alias(holder_id, alias_id)
        await self.cascade.delete_alias(alias_id, hard_delete=hard_delete)

    async def delete_related_party(
        self, holder_id: UUID, alias_id: UUID, related_party_id: UUID
    ) -> Alias:
        await self._owned_alias(holder_id, alias_id)
        alias = await self.alias_repo.delete_related_party(alias_id, related_party_id)
        logger.info(
            "related_party_deleted",
            alias_id=str(alias_id),
            related_party_id=str(related_party_id),
        )
        return await self._with_links(alias)
