"""Plaintext domain entities for holders, aliases and holder links.

These objects never carry ciphertext or search tokens. The database mappers
translate them to and from the encrypted at-rest form.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class HolderType(str, Enum):
    """Kind of person a holder represents."""

    NATURAL_PERSON = "NATURAL_PERSON"
    LEGAL_PERSON = "LEGAL_PERSON"


class LinkType(str, Enum):
    """Relationship a holder has with an alias."""

    PRIMARY_HOLDER = "PRIMARY_HOLDER"
    LEGAL_REPRESENTATIVE = "LEGAL_REPRESENTATIVE"
    RESPONSIBLE_PARTY = "RESPONSIBLE_PARTY"


# Order in which an alias's links are removed during deletion
LINK_TYPE_PRIORITY: tuple[LinkType, ...] = (
    LinkType.PRIMARY_HOLDER,
    LinkType.LEGAL_REPRESENTATIVE,
    LinkType.RESPONSIBLE_PARTY,
)


_LINK_TYPE_VALUES = frozenset(link_type.value for link_type in LinkType)


def is_valid_link_type(value: str | None) -> bool:
    """Membership test against the closed set of link types."""
    return value in _LINK_TYPE_VALUES


class RelatedPartyRole(str, Enum):
    PRIMARY_HOLDER = "PRIMARY_HOLDER"
    LEGAL_REPRESENTATIVE = "LEGAL_REPRESENTATIVE"
    RESPONSIBLE_PARTY = "RESPONSIBLE_PARTY"


# ----- Holder -----


@dataclass
class Address:
    line_1: str | None = None
    line_2: str | None = None
    zip_code: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None


@dataclass
class Addresses:
    primary: Address | None = None
    additional_1: Address | None = None
    additional_2: Address | None = None


@dataclass
class Contact:
    primary_email: str | None = None
    secondary_email: str | None = None
    mobile_phone: str | None = None
    other_phone: str | None = None


@dataclass
class NaturalPerson:
    favorite_name: str | None = None
    social_name: str | None = None
    gender: str | None = None
    birth_date: date | None = None
    civil_status: str | None = None
    nationality: str | None = None
    mother_name: str | None = None
    father_name: str | None = None
    status: str | None = None


@dataclass
class Representative:
    name: str | None = None
    document: str | None = None
    email: str | None = None
    role: str | None = None


@dataclass
class LegalPerson:
    trade_name: str | None = None
    activity: str | None = None
    type: str | None = None
    founding_date: date | None = None
    size: str | None = None
    status: str | None = None
    representative: Representative | None = None


@dataclass
class Holder:
    """A natural or legal person that can own ledger account bindings."""

    type: HolderType
    name: str
    document: str
    id: UUID = field(default_factory=uuid4)
    external_id: str | None = None
    addresses: Addresses | None = None
    contact: Contact | None = None
    natural_person: NaturalPerson | None = None
    legal_person: LegalPerson | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass
class HolderUpdate:
    """Partial holder update. None means "leave unchanged"."""

    external_id: str | None = None
    name: str | None = None
    addresses: Addresses | None = None
    contact: Contact | None = None
    natural_person: NaturalPerson | None = None
    legal_person: LegalPerson | None = None
    metadata: dict[str, Any] | None = None


# ----- Alias -----


@dataclass
class BankingDetails:
    branch: str | None = None
    account: str | None = None
    type: str | None = None
    opening_date: date | None = None
    closing_date: date | None = None
    iban: str | None = None
    country_code: str | None = None
    bank_id: str | None = None


@dataclass
class RegulatoryFields:
    participant_document: str | None = None


@dataclass
class RelatedParty:
    document: str
    name: str
    role: str
    start_date: date | None
    end_date: date | None = None
    id: UUID = field(default_factory=uuid4)


@dataclass
class HolderLink:
    """A typed edge from a holder to an alias."""

    holder_id: UUID
    alias_id: UUID
    link_type: LinkType
    id: UUID = field(default_factory=uuid4)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass
class Alias:
    """Binding between a ledger account and a holder."""

    ledger_id: str
    account_id: str
    holder_id: UUID
    id: UUID = field(default_factory=uuid4)
    document: str | None = None
    type: HolderType | None = None
    banking_details: BankingDetails | None = None
    regulatory_fields: RegulatoryFields | None = None
    related_parties: list[RelatedParty] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    holder_link_id: UUID | None = None
    # Derived at read time from the holder_links table
    holder_links: list[HolderLink] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass
class AliasUpdate:
    """Partial alias update. None means "leave unchanged".

    ``related_parties`` replaces the whole list when given.
    """

    banking_details: BankingDetails | None = None
    regulatory_fields: RegulatoryFields | None = None
    related_parties: list[RelatedParty] | None = None
    metadata: dict[str, Any] | None = None
    holder_link_id: UUID | None = None


# ----- Queries -----


@dataclass
class Page:
    limit: int = 10
    page: int = 1
    sort_order: str = "asc"

    @property
    def offset(self) -> int:
        return self.page * self.limit - self.limit


@dataclass
class HolderQuery:
    external_id: str | None = None
    document: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    page: Page = field(default_factory=Page)


@dataclass
class AliasQuery:
    holder_id: UUID | None = None
    account_id: str | None = None
    ledger_id: str | None = None
    document: str | None = None
    banking_details_branch: str | None = None
    banking_details_account: str | None = None
    banking_details_iban: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    page: Page = field(default_factory=Page)
