"""Shared API schemas and base models."""

from datetime import date
from typing import Any, ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledgercrm.domain.entities import (
    Address,
    Addresses,
    BankingDetails,
    Contact,
    LegalPerson,
    NaturalPerson,
    RegulatoryFields,
    RelatedParty,
    Representative,
)


class APIRequestModel(BaseModel):
    """Base model for request bodies.

    Forbids unknown fields to avoid silently accepting typos or outdated clients.
    """

    model_config = ConfigDict(extra="forbid")


class BlockModel(APIRequestModel):
    """A nested value object, used both in request bodies and responses.

    ``to_entity`` builds the matching domain dataclass. Unset attributes are
    left to the dataclass defaults so partial updates stay partial.
    """

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    entity: ClassVar[type]

    def to_entity(self) -> Any:
        values: dict[str, Any] = {}
        for name in type(self).model_fields:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, BlockModel):
                value = value.to_entity()
            elif isinstance(value, list):
                value = [v.to_entity() if isinstance(v, BlockModel) else v for v in value]
            values[name] = value
        return self.entity(**values)


def to_entity(block: BlockModel | None) -> Any:
    return block.to_entity() if block is not None else None


# ----- Holder blocks -----


class AddressModel(BlockModel):
    entity = Address

    line_1: str | None = Field(default=None, max_length=256)
    line_2: str | None = Field(default=None, max_length=256)
    zip_code: str | None = Field(default=None, max_length=32)
    city: str | None = Field(default=None, max_length=128)
    state: str | None = Field(default=None, max_length=128)
    country: str | None = Field(default=None, max_length=2)


class AddressesModel(BlockModel):
    entity = Addresses

    primary: AddressModel | None = None
    additional_1: AddressModel | None = None
    additional_2: AddressModel | None = None


class ContactModel(BlockModel):
    entity = Contact

    primary_email: str | None = Field(default=None, max_length=256)
    secondary_email: str | None = Field(default=None, max_length=256)
    mobile_phone: str | None = Field(default=None, max_length=32)
    other_phone: str | None = Field(default=None, max_length=32)


class NaturalPersonModel(BlockModel):
    entity = NaturalPerson

    favorite_name: str | None = None
    social_name: str | None = None
    gender: str | None = None
    birth_date: date | None = None
    civil_status: str | None = None
    nationality: str | None = None
    mother_name: str | None = None
    father_name: str | None = None
    status: str | None = None


class RepresentativeModel(BlockModel):
    entity = Representative

    name: str | None = None
    document: str | None = None
    email: str | None = None
    role: str | None = None


class LegalPersonModel(BlockModel):
    entity = LegalPerson

    trade_name: str | None = None
    activity: str | None = None
    type: str | None = None
    founding_date: date | None = None
    size: str | None = None
    status: str | None = None
    representative: RepresentativeModel | None = None


# ----- Alias blocks -----


class BankingDetailsModel(BlockModel):
    entity = BankingDetails

    branch: str | None = Field(default=None, max_length=32)
    account: str | None = Field(default=None, max_length=64)
    type: str | None = None
    opening_date: date | None = None
    closing_date: date | None = None
    iban: str | None = Field(default=None, max_length=34)
    country_code: str | None = Field(default=None, max_length=2)
    bank_id: str | None = None


class RegulatoryFieldsModel(BlockModel):
    entity = RegulatoryFields

    participant_document: str | None = None


class RelatedPartyModel(BlockModel):
    """A related party. Presence rules are enforced by the alias service."""

    entity = RelatedParty

    id: UUID | None = None
    document: str = ""
    name: str = ""
    role: str = ""
    start_date: date | None = None
    end_date: date | None = None

    def to_entity(self) -> RelatedParty:
        party = RelatedParty(
            document=self.document,
            name=self.name,
            role=self.role,
            start_date=self.start_date,
            end_date=self.end_date,
        )
        if self.id is not None:
            party.id = self.id
        return party
