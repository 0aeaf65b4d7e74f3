"""Ports for holder, alias and holder-link persistence."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol
from uuid import UUID

from ledgercrm.domain.entities import (
    Alias,
    AliasQuery,
    AliasUpdate,
    Holder,
    HolderLink,
    HolderQuery,
    HolderUpdate,
    LinkType,
    Page,
)


class HolderRepositoryPort(Protocol):
    """Repository interface for holders."""

    async def create(self, holder: Holder) -> Holder:
        """Persist a new holder."""

    async def find(self, id: UUID, include_deleted: bool = False) -> Holder:
        """Get a holder by ID or raise HolderNotFoundError."""

    async def find_all(self, query: HolderQuery, include_deleted: bool = False) -> list[Holder]:
        """List holders matching the query."""

    async def update(
        self, id: UUID, update: HolderUpdate, fields_to_remove: Iterable[str] = ()
    ) -> Holder:
        """Apply a partial update."""

    async def delete(self, id: UUID, hard_delete: bool = False, missing_ok: bool = False) -> None:
        """Soft or hard delete a holder."""


class AliasRepositoryPort(Protocol):
    """Repository interface for aliases."""

    async def create(self, alias: Alias) -> Alias:
        """Persist a new alias."""

    async def find(self, id: UUID, include_deleted: bool = False) -> Alias:
        """Get an alias by ID or raise AliasNotFoundError."""

    async def find_all(self, query: AliasQuery, include_deleted: bool = False) -> list[Alias]:
        """List aliases matching the query."""

    async def update(
        self, id: UUID, update: AliasUpdate, fields_to_remove: Iterable[str] = ()
    ) -> Alias:
        """Apply a partial update."""

    async def delete(self, id: UUID, hard_delete: bool = False, missing_ok: bool = False) -> None:
        """Soft or hard delete an alias."""

    async def count_by_holder(self, holder_id: UUID) -> int:
        """Count non-deleted aliases of a holder."""

    async def delete_related_party(self, alias_id: UUID, related_party_id: UUID) -> Alias:
        """Remove a related party from an alias."""


class HolderLinkRepositoryPort(Protocol):
    """Repository interface for holder links."""

    async def create(self, link: HolderLink) -> HolderLink:
        """Persist a new link. Unique violations surface as UniqueViolationError."""

    async def find(self, id: UUID, include_deleted: bool = False) -> HolderLink:
        """Get a link by ID or raise HolderLinkNotFoundError."""

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
        """List links matching the filters."""

    async def find_by_alias_id(
        self, alias_id: UUID, include_deleted: bool = False
    ) -> list[HolderLink]:
        """List the links of an alias."""

    async def find_by_holder_id(
        self, holder_id: UUID, include_deleted: bool = False
    ) -> list[HolderLink]:
        """List the links of a holder."""

    async def find_by_alias_id_and_link_type(
        self, alias_id: UUID, link_type: LinkType
    ) -> HolderLink | None:
        """Get the live link of a type for an alias, if any."""

    async def update(
        self,
        id: UUID,
        metadata: Mapping[str, Any] | None = None,
        fields_to_remove: Iterable[str] = (),
    ) -> HolderLink:
        """Update link metadata."""

    async def delete(self, id: UUID, hard_delete: bool = False, missing_ok: bool = False) -> None:
        """Soft or hard delete a link."""
