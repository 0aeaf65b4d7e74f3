"""HolderLink <-> HolderLinkRecord mapping. Links carry no personal data."""

from typing import Any

from ledgercrm.domain.entities import HolderLink, LinkType
from ledgercrm.infrastructure.database.mappers.base import DocumentMapper, as_utc, utcnow
from ledgercrm.infrastructure.database.models.holder_link import HolderLinkRecord


class HolderLinkMapper(DocumentMapper):
    entity_name = "HolderLink"

    def to_document(self, link: HolderLink) -> dict[str, Any]:
        created_at = link.created_at or utcnow()
        return {
            "id": link.id,
            "holder_id": link.holder_id,
            "alias_id": link.alias_id,
            "link_type": LinkType(link.link_type).value,
            "metadata": dict(link.metadata or {}),
            "created_at": created_at,
            "updated_at": link.updated_at or created_at,
            "deleted_at": link.deleted_at,
        }

    def to_entity(self, record: HolderLinkRecord) -> HolderLink:
        return HolderLink(
            id=record.id,
            holder_id=record.holder_id,
            alias_id=record.alias_id,
            link_type=LinkType(record.link_type),
            metadata=dict(record.metadata_ or {}),
            created_at=as_utc(record.created_at),
            updated_at=as_utc(record.updated_at),
            deleted_at=as_utc(record.deleted_at),
        )
