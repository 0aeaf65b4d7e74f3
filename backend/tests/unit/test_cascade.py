"""Unit tests for the deletion cascade."""

from unittest.mock import AsyncMock, call
from uuid import uuid4

import pytest

from ledgercrm.domain.cascade import DeletionCascade
from ledgercrm.domain.entities import HolderLink, LinkType
from ledgercrm.shared.exceptions import (
    HolderHasAliasesError,
    HolderLinkNotFoundError,
    PersistenceError,
)


def link(alias_id, link_type, holder_id=None):
    return HolderLink(holder_id=holder_id or uuid4(), alias_id=alias_id, link_type=link_type)


@pytest.fixture
def repos():
    return AsyncMock(), AsyncMock(), AsyncMock()


class TestDeleteAlias:
    @pytest.mark.asyncio
    async def test_links_deleted_primary_first_then_alias(self, repos):
        holder_repo, alias_repo, link_repo = repos
        alias_id = uuid4()
        responsible = link(alias_id, LinkType.RESPONSIBLE_PARTY)
        primary = link(alias_id, LinkType.PRIMARY_HOLDER)
        legal = link(alias_id, LinkType.LEGAL_REPRESENTATIVE)
        link_repo.find_by_alias_id = AsyncMock(return_value=[responsible, primary, legal])

        await DeletionCascade(holder_repo, alias_repo, link_repo).delete_alias(
            alias_id, hard_delete=True
        )

        assert link_repo.delete.await_args_list == [
            call(primary.id, hard_delete=True),
            call(legal.id, hard_delete=True),
            call(responsible.id, hard_delete=True),
        ]
        alias_repo.delete.assert_awaited_once_with(alias_id, hard_delete=True)

    @pytest.mark.asyncio
    async def test_alias_without_links_is_refused(self, repos):
        holder_repo, alias_repo, link_repo = repos
        link_repo.find_by_alias_id = AsyncMock(return_value=[])

        with pytest.raises(HolderLinkNotFoundError):
            await DeletionCascade(holder_repo, alias_repo, link_repo).delete_alias(uuid4())

        alias_repo.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_link_delete_failure_keeps_alias(self, repos):
        holder_repo, alias_repo, link_repo = repos
        alias_id = uuid4()
        link_repo.find_by_alias_id = AsyncMock(
            return_value=[link(alias_id, LinkType.PRIMARY_HOLDER)]
        )
        link_repo.delete = AsyncMock(
            side_effect=PersistenceError("boom", entity="HolderLink", operation="delete")
        )

        with pytest.raises(PersistenceError):
            await DeletionCascade(holder_repo, alias_repo, link_repo).delete_alias(alias_id)

        alias_repo.delete.assert_not_awaited()


class TestDeleteHolder:
    @pytest.mark.asyncio
    async def test_holder_with_aliases_is_refused(self, repos):
        holder_repo, alias_repo, link_repo = repos
        alias_repo.count_by_holder = AsyncMock(return_value=2)

        with pytest.raises(HolderHasAliasesError) as exc_info:
            await DeletionCascade(holder_repo, alias_repo, link_repo).delete_holder(uuid4())

        assert exc_info.value.details["alias_count"] == 2
        link_repo.delete.assert_not_awaited()
        holder_repo.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_links_then_holder_with_same_delete_mode(self, repos):
        holder_repo, alias_repo, link_repo = repos
        holder_id = uuid4()
        links = [link(uuid4(), LinkType.LEGAL_REPRESENTATIVE, holder_id) for _ in range(2)]
        alias_repo.count_by_holder = AsyncMock(return_value=0)
        link_repo.find_by_holder_id = AsyncMock(return_value=links)

        await DeletionCascade(holder_repo, alias_repo, link_repo).delete_holder(holder_id)

        assert link_repo.delete.await_count == 2
        holder_repo.delete.assert_awaited_once_with(holder_id, hard_delete=False)

    @pytest.mark.asyncio
    async def test_every_link_attempted_and_first_error_raised(self, repos):
        holder_repo, alias_repo, link_repo = repos
        holder_id = uuid4()
        links = [link(uuid4(), LinkType.RESPONSIBLE_PARTY, holder_id) for _ in range(3)]
        first = PersistenceError("first", entity="HolderLink", operation="delete")
        second = PersistenceError("second", entity="HolderLink", operation="delete")
        alias_repo.count_by_holder = AsyncMock(return_value=0)
        link_repo.find_by_holder_id = AsyncMock(return_value=links)
        link_repo.delete = AsyncMock(side_effect=[first, None, second])

        with pytest.raises(PersistenceError) as exc_info:
            await DeletionCascade(holder_repo, alias_repo, link_repo).delete_holder(holder_id)

        assert exc_info.value is first
        assert link_repo.delete.await_count == 3
        holder_repo.delete.assert_not_awaited()
