"""Input checks that run before any alias or holder-link write."""

from collections.abc import Iterable
from datetime import date

from ledgercrm.domain.entities import (
    BankingDetails,
    LinkType,
    RelatedParty,
    RelatedPartyRole,
    is_valid_link_type,
)
from ledgercrm.shared.exceptions import (
    AliasClosingDateBeforeCreationError,
    InvalidLinkTypeError,
    InvalidRelatedPartyRoleError,
    RelatedPartyDocumentRequiredError,
    RelatedPartyEndDateInvalidError,
    RelatedPartyNameRequiredError,
    RelatedPartyStartDateRequiredError,
)


def parse_link_type(value: str | LinkType) -> LinkType:
    """Return the LinkType for ``value`` or raise InvalidLinkTypeError."""
    if not is_valid_link_type(value):
        raise InvalidLinkTypeError(str(value), [t.value for t in LinkType])
    return LinkType(value)


def validate_related_parties(parties: Iterable[RelatedParty]) -> None:
    roles = {role.value for role in RelatedPartyRole}
    for party in parties:
        if not party.document or not party.document.strip():
            raise RelatedPartyDocumentRequiredError()
        if not party.name or not party.name.strip():
            raise RelatedPartyNameRequiredError()
        if party.role not in roles:
            raise InvalidRelatedPartyRoleError(str(party.role), sorted(roles))
        if party.start_date is None:
            raise RelatedPartyStartDateRequiredError()
        if party.end_date is not None and party.end_date < party.start_date:
            raise RelatedPartyEndDateInvalidError()


def validate_closing_date(banking: BankingDetails | None, created_on: date) -> None:
    """A banking closing date may not precede the alias creation date."""
    if banking is None or banking.closing_date is None:
        return
    if banking.closing_date < created_on:
        raise AliasClosingDateBeforeCreationError()
