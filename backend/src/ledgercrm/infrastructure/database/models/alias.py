"""Alias persistence model."""

from typing import Any
from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgercrm.infrastructure.database.models.base import (
    Base,
    JSONDocument,
    MetadataMixin,
    SoftDeleteMixin,
    TenantMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    live_rows_only,
)

ALIAS_ID_HOLDER_UNIQUE = "uq_aliases_id_holder"
ALIAS_ACCOUNT_UNIQUE = "uq_aliases_account_id"
ALIAS_LEDGER_ACCOUNT_UNIQUE = "uq_aliases_ledger_account"
ALIAS_RELATED_PARTY_TOKENS_INDEX = "ix_aliases_search_related_party_documents"


class AliasRecord(
    Base, UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin
):
    """At-rest form of an alias.

    Encrypted values: ``document``, ``banking_details.account``,
    ``banking_details.iban``, ``regulatory_fields.participant_document`` and
    each ``related_parties[].document``. Every one of them has a matching
    ``search_*`` HMAC token column.

    ``search_participant_document`` and ``search_related_party_documents`` are
    indexed but not part of the query filters yet; they are kept current on
    every write so a lookup can be added without a backfill. The related-party
    tokens are a JSON list, indexed with GIN on PostgreSQL for containment
    (``@>``) lookups.
    """

    __tablename__ = "aliases"
    __table_args__ = (
        Index(
            ALIAS_ID_HOLDER_UNIQUE,
            "organization_id",
            "id",
            "holder_id",
            unique=True,
            **live_rows_only(),
        ),
        Index(
            ALIAS_ACCOUNT_UNIQUE,
            "organization_id",
            "account_id",
            unique=True,
            **live_rows_only(),
        ),
        Index(
            ALIAS_LEDGER_ACCOUNT_UNIQUE,
            "organization_id",
            "ledger_id",
            "account_id",
            unique=True,
            **live_rows_only(),
        ),
        Index(
            ALIAS_RELATED_PARTY_TOKENS_INDEX,
            "search_related_party_documents",
            postgresql_using="gin",
        ).ddl_if(dialect="postgresql"),
    )

    ledger_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    account_id: Mapped[str] = mapped_column(String(255), nullable=False)
    holder_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    holder_link_id: Mapped[UUID | None] = mapped_column(nullable=True)

    type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    # Encrypted
    document: Mapped[str | None] = mapped_column(String, nullable=True)

    banking_details: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)
    regulatory_fields: Mapped[dict[str, Any] | None] = mapped_column(
        JSONDocument, nullable=True
    )
    related_parties: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, default=list, nullable=False
    )

    # Search tokens
    search_document: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    search_banking_details_account: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    search_banking_details_iban: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    search_participant_document: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    search_related_party_documents: Mapped[list[str]] = mapped_column(
        JSONDocument, default=list, nullable=False
    )

    def __repr__(self) -> str:
        return f"<AliasRecord(id={self.id}, ledger_id={self.ledger_id})>"
