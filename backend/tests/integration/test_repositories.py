"""Integration tests for the repositories against a real database."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select

from ledgercrm.domain.entities import (
    AliasQuery,
    AliasUpdate,
    BankingDetails,
    Contact,
    HolderLink,
    HolderQuery,
    HolderUpdate,
    LinkType,
    Page,
)
from ledgercrm.infrastructure.database.conflicts import UniqueViolationError
from ledgercrm.infrastructure.database.mappers import AliasMapper, HolderMapper
from ledgercrm.infrastructure.database.models import AliasRecord, HolderRecord
from ledgercrm.infrastructure.database.repositories import AliasRepository, HolderRepository
from ledgercrm.shared.exceptions import (
    AccountAlreadyAssociatedError,
    AliasNotFoundError,
    HolderDocumentConflictError,
    HolderNotFoundError,
    InvalidFieldRemovalError,
    RelatedPartyNotFoundError,
)

from factories import make_alias, make_holder, make_related_party

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


class TestHolderRepository:
    @pytest.mark.asyncio
    async def test_create_and_find_decrypts(self, holder_repo, async_session):
        holder = await holder_repo.create(make_holder(contact=Contact(primary_email="a@b.io")))

        found = await holder_repo.find(holder.id)
        stored = (
            await async_session.execute(select(HolderRecord).where(HolderRecord.id == holder.id))
        ).scalar_one()

        assert found.document == "12345678901"
        assert found.contact.primary_email == "a@b.io"
        assert stored.document != "12345678901"
        assert stored.name != "Maria Silva"
        assert stored.search_document == holder_repo.mapper.search_token("12345678901")

    @pytest.mark.asyncio
    async def test_duplicate_document_conflicts_and_session_survives(self, holder_repo):
        await holder_repo.create(make_holder())

        with pytest.raises(HolderDocumentConflictError):
            await holder_repo.create(make_holder())

        # The failed insert was rolled back to its savepoint only
        other = await holder_repo.create(make_holder(document="22233344455"))
        assert (await holder_repo.find(other.id)).document == "22233344455"

    @pytest.mark.asyncio
    async def test_tenants_are_isolated(self, holder_repo, async_session, cipher):
        holder = await holder_repo.create(make_holder())
        other_tenant = HolderRepository(async_session, uuid4(), HolderMapper(cipher))

        with pytest.raises(HolderNotFoundError):
            await other_tenant.find(holder.id)
        # Same document is free in another organization
        await other_tenant.create(make_holder())

    @pytest.mark.asyncio
    async def test_find_all_filters(self, holder_repo):
        await holder_repo.create(make_holder(external_id="ext-1", metadata={"tier": "gold", "n": 1}))
        await holder_repo.create(
            make_holder(document="22233344455", metadata={"tier": "silver", "n": 2})
        )

        by_document = await holder_repo.find_all(HolderQuery(document="22233344455"))
        by_external = await holder_repo.find_all(HolderQuery(external_id="ext-1"))
        by_metadata = await holder_repo.find_all(HolderQuery(metadata={"n": 2}))

        assert [h.document for h in by_document] == ["22233344455"]
        assert [h.external_id for h in by_external] == ["ext-1"]
        assert [h.metadata["tier"] for h in by_metadata] == ["silver"]

    @pytest.mark.asyncio
    async def test_partial_update_and_field_removal(self, holder_repo):
        holder = await holder_repo.create(
            make_holder(
                contact=Contact(primary_email="a@b.io", mobile_phone="+551199"),
                metadata={"tier": "gold", "region": "south"},
            )
        )

        updated = await holder_repo.update(
            holder.id,
            HolderUpdate(contact=Contact(primary_email="new@b.io")),
            ["metadata.region"],
        )

        assert updated.contact == Contact(primary_email="new@b.io", mobile_phone="+551199")
        assert updated.metadata == {"tier": "gold"}
        assert updated.name == "Maria Silva"

        with pytest.raises(InvalidFieldRemovalError):
            await holder_repo.update(holder.id, HolderUpdate(), ["document"])

    @pytest.mark.asyncio
    async def test_soft_and_hard_delete(self, holder_repo):
        holder = await holder_repo.create(make_holder())

        await holder_repo.delete(holder.id)

        with pytest.raises(HolderNotFoundError):
            await holder_repo.find(holder.id)
        assert (await holder_repo.find(holder.id, include_deleted=True)).deleted_at is not None
        # The unique index only covers live rows
        await holder_repo.create(make_holder())

        await holder_repo.delete(holder.id, hard_delete=True)
        with pytest.raises(HolderNotFoundError):
            await holder_repo.find(holder.id, include_deleted=True)
        await holder_repo.delete(holder.id, hard_delete=True, missing_ok=True)


class TestAliasRepository:
    @pytest.fixture
    async def holder(self, holder_repo):
        return await holder_repo.create(make_holder())

    @pytest.mark.asyncio
    async def test_sensitive_fields_stored_encrypted(self, alias_repo, holder, async_session):
        alias = await alias_repo.create(make_alias(holder.id, document="12345678901"))

        stored = (
            await async_session.execute(select(AliasRecord).where(AliasRecord.id == alias.id))
        ).scalar_one()
        found = await alias_repo.find(alias.id)

        assert stored.banking_details["account"] != "123450"
        assert stored.banking_details["branch"] == "0001"
        assert found.banking_details.account == "123450"
        assert found.related_parties[0].document == "11122233344"

    @pytest.mark.asyncio
    async def test_account_can_only_be_bound_once(self, alias_repo, holder):
        await alias_repo.create(make_alias(holder.id))

        with pytest.raises(AccountAlreadyAssociatedError):
            await alias_repo.create(make_alias(holder.id, ledger_id="ledger-2"))

    @pytest.mark.asyncio
    async def test_search_by_tokens_and_plain_fields(self, alias_repo, holder):
        first = await alias_repo.create(make_alias(holder.id, document="12345678901"))
        await alias_repo.create(
            make_alias(
                holder.id,
                account_id="acc-002",
                banking_details=BankingDetails(branch="0002", account="777", iban="DE89370400"),
                metadata={"tier": "silver"},
            )
        )

        assert [a.id for a in await alias_repo.find_all(AliasQuery(document="12345678901"))] == [
            first.id
        ]
        assert len(await alias_repo.find_all(AliasQuery(banking_details_account="777"))) == 1
        assert len(await alias_repo.find_all(AliasQuery(banking_details_iban="DE89370400"))) == 1
        assert len(await alias_repo.find_all(AliasQuery(banking_details_branch="0001"))) == 1
        assert len(await alias_repo.find_all(AliasQuery(metadata={"tier": "silver"}))) == 1
        assert len(await alias_repo.find_all(AliasQuery(holder_id=holder.id))) == 2
        assert await alias_repo.find_all(AliasQuery(banking_details_account="nope")) == []

    @pytest.mark.asyncio
    async def test_pagination_and_sort_order(self, alias_repo, holder):
        for i in range(3):
            await alias_repo.create(
                make_alias(holder.id, account_id=f"acc-{i}", created_at=T0 + timedelta(minutes=i))
            )

        second_page = await alias_repo.find_all(AliasQuery(page=Page(limit=2, page=2)))
        newest_first = await alias_repo.find_all(AliasQuery(page=Page(sort_order="desc")))

        assert [a.account_id for a in second_page] == ["acc-2"]
        assert [a.account_id for a in newest_first] == ["acc-2", "acc-1", "acc-0"]

    @pytest.mark.asyncio
    async def test_removing_sensitive_field_clears_its_token(self, alias_repo, holder, async_session):
        alias = await alias_repo.create(make_alias(holder.id))

        updated = await alias_repo.update(alias.id, AliasUpdate(), ["banking_details.account"])

        stored = (
            await async_session.execute(select(AliasRecord).where(AliasRecord.id == alias.id))
        ).scalar_one()
        assert updated.banking_details.account is None
        assert updated.banking_details.branch == "0001"
        assert stored.search_banking_details_account is None
        assert await alias_repo.find_all(AliasQuery(banking_details_account="123450")) == []

    @pytest.mark.asyncio
    async def test_soft_delete_hides_alias_and_frees_the_account(self, alias_repo, holder):
        alias = await alias_repo.create(make_alias(holder.id))

        await alias_repo.delete(alias.id)

        with pytest.raises(AliasNotFoundError):
            await alias_repo.find(alias.id)
        deleted = await alias_repo.find(alias.id, include_deleted=True)
        assert deleted.deleted_at is not None
        assert deleted.updated_at >= deleted.created_at
        assert await alias_repo.find_all(AliasQuery(account_id="acc-001")) == []
        including_deleted = await alias_repo.find_all(
            AliasQuery(account_id="acc-001"), include_deleted=True
        )
        assert [a.id for a in including_deleted] == [alias.id]
        # The account index only covers live aliases
        await alias_repo.create(make_alias(holder.id))

    @pytest.mark.asyncio
    async def test_hard_delete_removes_alias(self, alias_repo, holder, async_session):
        alias = await alias_repo.create(make_alias(holder.id))

        await alias_repo.delete(alias.id, hard_delete=True)

        with pytest.raises(AliasNotFoundError):
            await alias_repo.find(alias.id)
        with pytest.raises(AliasNotFoundError):
            await alias_repo.find(alias.id, include_deleted=True)
        stored = await async_session.execute(select(AliasRecord).where(AliasRecord.id == alias.id))
        assert stored.scalar_one_or_none() is None
        with pytest.raises(AliasNotFoundError):
            await alias_repo.delete(alias.id, hard_delete=True)
        await alias_repo.delete(alias.id, hard_delete=True, missing_ok=True)

    @pytest.mark.asyncio
    async def test_count_by_holder_ignores_deleted(self, alias_repo, holder):
        kept = await alias_repo.create(make_alias(holder.id))
        gone = await alias_repo.create(make_alias(holder.id, account_id="acc-002"))
        await alias_repo.delete(gone.id)

        assert await alias_repo.count_by_holder(holder.id) == 1
        assert kept.id != gone.id

    @pytest.mark.asyncio
    async def test_delete_related_party(self, alias_repo, holder, async_session):
        keep = make_related_party(document="55566677788", role="RESPONSIBLE_PARTY")
        drop = make_related_party()
        alias = await alias_repo.create(make_alias(holder.id, related_parties=[keep, drop]))

        updated = await alias_repo.delete_related_party(alias.id, drop.id)

        stored = (
            await async_session.execute(select(AliasRecord).where(AliasRecord.id == alias.id))
        ).scalar_one()
        assert [p.id for p in updated.related_parties] == [keep.id]
        assert stored.search_related_party_documents == [
            alias_repo.mapper.search_token("55566677788")
        ]
        with pytest.raises(RelatedPartyNotFoundError):
            await alias_repo.delete_related_party(alias.id, drop.id)

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_see_alias(self, alias_repo, holder, async_session, cipher):
        alias = await alias_repo.create(make_alias(holder.id))

        with pytest.raises(AliasNotFoundError):
            await AliasRepository(async_session, uuid4(), AliasMapper(cipher)).find(alias.id)


class TestHolderLinkRepository:
    @pytest.mark.asyncio
    async def test_second_live_primary_holder_rejected_by_index(self, link_repo):
        alias_id = uuid4()
        await link_repo.create(HolderLink(uuid4(), alias_id, LinkType.PRIMARY_HOLDER))

        with pytest.raises(UniqueViolationError):
            await link_repo.create(HolderLink(uuid4(), alias_id, LinkType.PRIMARY_HOLDER))

    @pytest.mark.asyncio
    async def test_soft_deleted_link_frees_the_slot(self, link_repo):
        alias_id = uuid4()
        first = await link_repo.create(HolderLink(uuid4(), alias_id, LinkType.PRIMARY_HOLDER))
        await link_repo.delete(first.id)

        second = await link_repo.create(HolderLink(uuid4(), alias_id, LinkType.PRIMARY_HOLDER))

        found = await link_repo.find_by_alias_id_and_link_type(alias_id, LinkType.PRIMARY_HOLDER)
        assert found.id == second.id
        assert len(await link_repo.find_by_alias_id(alias_id, include_deleted=True)) == 2

    @pytest.mark.asyncio
    async def test_different_types_coexist(self, link_repo):
        alias_id, holder_id = uuid4(), uuid4()
        for link_type in LinkType:
            await link_repo.create(HolderLink(holder_id, alias_id, link_type))

        assert len(await link_repo.find_by_alias_id(alias_id)) == 3
        assert len(await link_repo.find_by_holder_id(holder_id)) == 3
        assert (
            await link_repo.find_by_alias_id_and_link_type(uuid4(), LinkType.PRIMARY_HOLDER)
            is None
        )

    @pytest.mark.asyncio
    async def test_metadata_update(self, link_repo):
        link = await link_repo.create(
            HolderLink(uuid4(), uuid4(), LinkType.RESPONSIBLE_PARTY, metadata={"a": "1"})
        )

        updated = await link_repo.update(link.id, {"b": "2"})
        cleared = await link_repo.update(link.id, fields_to_remove=["metadata"])

        assert updated.metadata == {"a": "1", "b": "2"}
        assert cleared.metadata == {}
