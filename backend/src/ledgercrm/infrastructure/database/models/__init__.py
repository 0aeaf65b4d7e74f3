"""SQLAlchemy ORM models."""

from ledgercrm.infrastructure.database.models.alias import AliasRecord
from ledgercrm.infrastructure.database.models.base import Base, TenantMixin, TimestampMixin
from ledgercrm.infrastructure.database.models.holder import HolderRecord
from ledgercrm.infrastructure.database.models.holder_link import HolderLinkRecord

__all__ = [
    "AliasRecord",
    "Base",
    "HolderLinkRecord",
    "HolderRecord",
    "TenantMixin",
    "TimestampMixin",
]
