"""Holder <-> HolderRecord mapping with field encryption and search tokens."""

from collections.abc import Iterable
from typing import Any

from ledgercrm.domain.entities import (
    Addresses,
    Contact,
    Holder,
    HolderType,
    HolderUpdate,
    LegalPerson,
    NaturalPerson,
)
from ledgercrm.infrastructure.database.mappers.base import DocumentMapper, as_utc, utcnow
from ledgercrm.infrastructure.database.mappers.patch import Patch, build_patch
from ledgercrm.infrastructure.database.models.holder import HolderRecord

CONTACT_ENCRYPTED = frozenset({"primary_email", "secondary_email", "mobile_phone", "other_phone"})
NATURAL_PERSON_ENCRYPTED = frozenset({"mother_name", "father_name"})
LEGAL_PERSON_ENCRYPTED = frozenset(
    {"representative.name", "representative.document", "representative.email"}
)

HOLDER_SEARCH_COLUMNS = {"document": "search_document"}

HOLDER_REMOVABLE_FIELDS = frozenset(
    {"external_id", "addresses", "contact", "natural_person", "legal_person", "metadata"}
)


class HolderMapper(DocumentMapper):
    entity_name = "Holder"

    def to_document(self, holder: Holder) -> dict[str, Any]:
        """Build the at-rest document for a new holder."""
        created_at = holder.created_at or utcnow()
        with self.codec_errors("to_document"):
            return {
                "id": holder.id,
                "external_id": holder.external_id,
                "type": HolderType(holder.type).value,
                "name": self.cipher.encrypt(holder.name),
                "document": self.cipher.encrypt(holder.document),
                "addresses": self.seal_block(holder.addresses),
                "contact": self.seal_block(holder.contact, CONTACT_ENCRYPTED),
                "natural_person": self.seal_block(
                    holder.natural_person, NATURAL_PERSON_ENCRYPTED
                ),
                "legal_person": self.seal_block(holder.legal_person, LEGAL_PERSON_ENCRYPTED),
                "metadata": dict(holder.metadata or {}),
                "search_document": self.search_token(holder.document),
                "created_at": created_at,
                "updated_at": holder.updated_at or created_at,
                "deleted_at": holder.deleted_at,
            }

    def to_update_document(self, update: HolderUpdate) -> dict[str, Any]:
        document: dict[str, Any] = {"updated_at": utcnow()}
        with self.codec_errors("to_update_document"):
            if update.external_id is not None:
                document["external_id"] = update.external_id
            if update.name is not None:
                document["name"] = self.cipher.encrypt(update.name)
            if update.addresses is not None:
                document["addresses"] = self.seal_block(update.addresses, partial=True)
            if update.contact is not None:
                document["contact"] = self.seal_block(
                    update.contact, CONTACT_ENCRYPTED, partial=True
                )
            if update.natural_person is not None:
                document["natural_person"] = self.seal_block(
                    update.natural_person, NATURAL_PERSON_ENCRYPTED, partial=True
                )
            if update.legal_person is not None:
                document["legal_person"] = self.seal_block(
                    update.legal_person, LEGAL_PERSON_ENCRYPTED, partial=True
                )
            if update.metadata is not None:
                document["metadata"] = dict(update.metadata)
        return document

    def to_patch(self, update: HolderUpdate, fields_to_remove: Iterable[str] = ()) -> Patch:
        return build_patch(
            self.to_update_document(update),
            fields_to_remove,
            removable=HOLDER_REMOVABLE_FIELDS,
            search_columns=HOLDER_SEARCH_COLUMNS,
        )

    def to_entity(self, record: HolderRecord) -> Holder:
        with self.codec_errors("to_entity"):
            return Holder(
                id=record.id,
                external_id=record.external_id,
                type=HolderType(record.type),
                name=self.cipher.decrypt(record.name) or "",
                document=self.cipher.decrypt(record.document) or "",
                addresses=self.open_block(record.addresses, Addresses),
                contact=self.open_block(record.contact, Contact, CONTACT_ENCRYPTED),
                natural_person=self.open_block(
                    record.natural_person, NaturalPerson, NATURAL_PERSON_ENCRYPTED
                ),
                legal_person=self.open_block(
                    record.legal_person, LegalPerson, LEGAL_PERSON_ENCRYPTED
                ),
                metadata=dict(record.metadata_ or {}),
                created_at=as_utc(record.created_at),
                updated_at=as_utc(record.updated_at),
                deleted_at=as_utc(record.deleted_at),
            )
