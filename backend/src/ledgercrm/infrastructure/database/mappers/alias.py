"""Alias <-> AliasRecord mapping with field encryption and search tokens."""

from collections.abc import Iterable
from typing import Any

from ledgercrm.domain.entities import (
    Alias,
    AliasUpdate,
    BankingDetails,
    HolderType,
    RegulatoryFields,
    RelatedParty,
)
from ledgercrm.infrastructure.database.mappers.base import DocumentMapper, as_utc, utcnow
from ledgercrm.infrastructure.database.mappers.patch import Patch, build_patch
from ledgercrm.infrastructure.database.models.alias import AliasRecord

BANKING_ENCRYPTED = frozenset({"account", "iban"})
REGULATORY_ENCRYPTED = frozenset({"participant_document"})
RELATED_PARTY_ENCRYPTED = frozenset({"document"})

# Sensitive path -> search token column
ALIAS_SEARCH_COLUMNS = {
    "document": "search_document",
    "banking_details.account": "search_banking_details_account",
    "banking_details.iban": "search_banking_details_iban",
    "regulatory_fields.participant_document": "search_participant_document",
    "related_parties": "search_related_party_documents",
}

ALIAS_REMOVABLE_FIELDS = frozenset(
    {"banking_details", "regulatory_fields", "related_parties", "metadata"}
)


class AliasMapper(DocumentMapper):
    entity_name = "Alias"

    def _search_tokens(
        self,
        *,
        banking: BankingDetails | None,
        regulatory: RegulatoryFields | None,
        partial: bool,
    ) -> dict[str, Any]:
        values = {
            "search_banking_details_account": banking.account if banking else None,
            "search_banking_details_iban": banking.iban if banking else None,
            "search_participant_document": (
                regulatory.participant_document if regulatory else None
            ),
        }
        return {
            column: self.search_token(value)
            for column, value in values.items()
            # Partial updates only regenerate tokens for values they carry
            if not partial or value is not None
        }

    def _seal_related_parties(
        self, parties: Iterable[RelatedParty]
    ) -> tuple[list[dict[str, Any]], list[str]]:
        sealed: list[dict[str, Any]] = []
        tokens: list[str] = []
        for party in parties:
            sealed.append(self.seal_fields(party, RELATED_PARTY_ENCRYPTED))
            token = self.search_token(party.document)
            if token is not None:
                tokens.append(token)
        return sealed, tokens

    def to_document(self, alias: Alias) -> dict[str, Any]:
        """Build the at-rest document for a new alias."""
        created_at = alias.created_at or utcnow()
        with self.codec_errors("to_document"):
            related_parties, related_tokens = self._seal_related_parties(alias.related_parties)
            return {
                "id": alias.id,
                "ledger_id": alias.ledger_id,
                "account_id": alias.account_id,
                "holder_id": alias.holder_id,
                "holder_link_id": alias.holder_link_id,
                "type": alias.type.value if alias.type else None,
                "document": self.cipher.encrypt(alias.document),
                "banking_details": self.seal_block(alias.banking_details, BANKING_ENCRYPTED),
                "regulatory_fields": self.seal_block(
                    alias.regulatory_fields, REGULATORY_ENCRYPTED
                ),
                "related_parties": related_parties,
                "metadata": dict(alias.metadata or {}),
                "search_document": self.search_token(alias.document),
                "search_related_party_documents": related_tokens,
                **self._search_tokens(
                    banking=alias.banking_details,
                    regulatory=alias.regulatory_fields,
                    partial=False,
                ),
                "created_at": created_at,
                "updated_at": alias.updated_at or created_at,
                "deleted_at": alias.deleted_at,
            }

    def to_update_document(self, update: AliasUpdate) -> dict[str, Any]:
        """Build the partial document for an update; absent fields are left out."""
        document: dict[str, Any] = {"updated_at": utcnow()}
        with self.codec_errors("to_update_document"):
            if update.banking_details is not None:
                document["banking_details"] = self.seal_block(
                    update.banking_details, BANKING_ENCRYPTED, partial=True
                )
            if update.regulatory_fields is not None:
                document["regulatory_fields"] = self.seal_block(
                    update.regulatory_fields, REGULATORY_ENCRYPTED, partial=True
                )
            if update.related_parties is not None:
                parties, tokens = self._seal_related_parties(update.related_parties)
                document["related_parties"] = parties
                document["search_related_party_documents"] = tokens
            if update.metadata is not None:
                document["metadata"] = dict(update.metadata)
            if update.holder_link_id is not None:
                document["holder_link_id"] = update.holder_link_id
            document.update(
                self._search_tokens(
                    banking=update.banking_details,
                    regulatory=update.regulatory_fields,
                    partial=True,
                )
            )
        return document

    def to_patch(self, update: AliasUpdate, fields_to_remove: Iterable[str] = ()) -> Patch:
        return build_patch(
            self.to_update_document(update),
            fields_to_remove,
            removable=ALIAS_REMOVABLE_FIELDS,
            search_columns=ALIAS_SEARCH_COLUMNS,
        )

    def to_entity(self, record: AliasRecord) -> Alias:
        """Decrypt a stored alias. ``holder_links`` is left empty for the caller to fill."""
        with self.codec_errors("to_entity"):
            related_parties = [
                party
                for party in (
                    self.open_block(raw, RelatedParty, RELATED_PARTY_ENCRYPTED)
                    for raw in record.related_parties or []
                )
                if party is not None
            ]
            return Alias(
                id=record.id,
                ledger_id=record.ledger_id,
                account_id=record.account_id,
                holder_id=record.holder_id,
                holder_link_id=record.holder_link_id,
                type=HolderType(record.type) if record.type else None,
                document=self.cipher.decrypt(record.document),
                banking_details=self.open_block(
                    record.banking_details, BankingDetails, BANKING_ENCRYPTED
                ),
                regulatory_fields=self.open_block(
                    record.regulatory_fields, RegulatoryFields, REGULATORY_ENCRYPTED
                ),
                related_parties=related_parties,
                metadata=dict(record.metadata_ or {}),
                created_at=as_utc(record.created_at),
                updated_at=as_utc(record.updated_at),
                deleted_at=as_utc(record.deleted_at),
            )
