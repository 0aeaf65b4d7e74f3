"""Entity <-> record mappers."""

from ledgercrm.infrastructure.database.mappers.alias import AliasMapper
from ledgercrm.infrastructure.database.mappers.holder import HolderMapper
from ledgercrm.infrastructure.database.mappers.holder_link import HolderLinkMapper

__all__ = ["AliasMapper", "HolderLinkMapper", "HolderMapper"]
