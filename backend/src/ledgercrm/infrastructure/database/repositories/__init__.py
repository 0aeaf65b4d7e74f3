"""Database repositories."""

from ledgercrm.infrastructure.database.repositories.alias import AliasRepository
from ledgercrm.infrastructure.database.repositories.base import BaseRepository
from ledgercrm.infrastructure.database.repositories.holder import HolderRepository
from ledgercrm.infrastructure.database.repositories.holder_link import HolderLinkRepository

__all__ = [
    "AliasRepository",
    "BaseRepository",
    "HolderLinkRepository",
    "HolderRepository",
]
