"""Holder persistence model."""

from typing import Any

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

HOLDER_DOCUMENT_UNIQUE = "uq_holders_search_document"


class HolderRecord(
    Base, UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin
):
    """At-rest form of a holder.

    ``name``, ``document`` and the personal sub-fields inside the JSON blocks
    hold Fernet ciphertext. ``search_document`` is the HMAC token of the
    plaintext document.
    """

    __tablename__ = "holders"
    __table_args__ = (
        Index(
            HOLDER_DOCUMENT_UNIQUE,
            "organization_id",
            "search_document",
            unique=True,
            **live_rows_only(),
        ),
    )

    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)

    # Encrypted
    name: Mapped[str] = mapped_column(String, nullable=False)
    document: Mapped[str] = mapped_column(String, nullable=False)

    addresses: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)
    contact: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)
    natural_person: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)
    legal_person: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)

    # Search tokens
    search_document: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<HolderRecord(id={self.id}, type={self.type})>"
