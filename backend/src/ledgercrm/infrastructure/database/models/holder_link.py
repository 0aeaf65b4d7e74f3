"""HolderLink persistence model."""

from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgercrm.infrastructure.database.models.base import (
    Base,
    MetadataMixin,
    SoftDeleteMixin,
    TenantMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    live_rows_only,
)

# Two distinct names so a violation can be traced back to the business rule
HOLDER_LINK_ALIAS_TYPE_UNIQUE = "uq_holder_links_alias_link_type"
HOLDER_LINK_PRIMARY_UNIQUE = "uq_holder_links_primary_holder"


class HolderLinkRecord(
    Base, UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin
):
    """At-rest form of a holder link. Nothing here is encrypted."""

    __tablename__ = "holder_links"
    __table_args__ = (
        Index(
            HOLDER_LINK_ALIAS_TYPE_UNIQUE,
            "organization_id",
            "alias_id",
            "link_type",
            unique=True,
            **live_rows_only(),
        ),
        Index(
            HOLDER_LINK_PRIMARY_UNIQUE,
            "organization_id",
            "alias_id",
            unique=True,
            **live_rows_only("link_type = 'PRIMARY_HOLDER'"),
        ),
    )

    holder_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    alias_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    link_type: Mapped[str] = mapped_column(String(32), nullable=False)

    def __repr__(self) -> str:
        return f"<HolderLinkRecord(id={self.id}, link_type={self.link_type})>"
