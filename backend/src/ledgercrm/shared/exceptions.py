"""Custom exception hierarchy for LedgerCRM.

Every failure raised by the service maps to exactly one of four kinds:
not-found, conflict, validation or internal. The API layer translates the
kind into an HTTP status; the concrete subclass carries the business meaning.
"""

from typing import Any


class CRMError(Exception):
    """Base exception for all LedgerCRM errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ----- Resource Errors -----


class NotFoundError(CRMError):
    """Requested resource was not found."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            message=f"{resource} not found",
            details={"resource": resource, "identifier": identifier},
        )


class HolderNotFoundError(NotFoundError):
    def __init__(self, identifier: str) -> None:
        super().__init__("Holder", identifier)


class AliasNotFoundError(NotFoundError):
    def __init__(self, identifier: str) -> None:
        super().__init__("Alias", identifier)


class HolderLinkNotFoundError(NotFoundError):
    def __init__(self, identifier: str) -> None:
        super().__init__("HolderLink", identifier)


class RelatedPartyNotFoundError(NotFoundError):
    def __init__(self, identifier: str) -> None:
        super().__init__("RelatedParty", identifier)


# ----- Conflict Errors -----


class ConflictError(CRMError):
    """Resource conflict (e.g., duplicate)."""

    pass


class AccountAlreadyAssociatedError(ConflictError):
    """A ledger account is already bound to another alias."""

    def __init__(self, account_id: str | None = None) -> None:
        super().__init__(
            message="An account from the ledger can only be associated with a single alias.",
            details={"account_id": account_id} if account_id else {},
        )


class HolderDocumentConflictError(ConflictError):
    def __init__(self) -> None:
        super().__init__(message="A document can only be associated with one holder.")


class DuplicateHolderLinkError(ConflictError):
    def __init__(self, alias_id: str, link_type: str) -> None:
        super().__init__(
            message=f"A holder link of type {link_type} already exists for this alias.",
            details={"alias_id": alias_id, "link_type": link_type},
        )


class PrimaryHolderAlreadyExistsError(ConflictError):
    def __init__(self, alias_id: str) -> None:
        super().__init__(
            message="The alias already has a primary holder.",
            details={"alias_id": alias_id, "link_type": "PRIMARY_HOLDER"},
        )


# ----- Validation Errors -----


class ValidationError(CRMError):
    """Input validation failed."""

    pass


class InvalidLinkTypeError(ValidationError):
    def __init__(self, link_type: str, supported: list[str]) -> None:
        super().__init__(
            message=f"Link type '{link_type}' is not supported",
            details={"link_type": link_type, "supported_types": supported},
        )


class InvalidRelatedPartyRoleError(ValidationError):
    def __init__(self, role: str, supported: list[str]) -> None:
        super().__init__(
            message=f"Related party role '{role}' is not supported",
            details={"role": role, "supported_roles": supported},
        )


class RelatedPartyDocumentRequiredError(ValidationError):
    def __init__(self) -> None:
        super().__init__(message="Related party document is required.")


class RelatedPartyNameRequiredError(ValidationError):
    def __init__(self) -> None:
        super().__init__(message="Related party name is required.")


class RelatedPartyStartDateRequiredError(ValidationError):
    def __init__(self) -> None:
        super().__init__(message="Related party start date is required.")


class RelatedPartyEndDateInvalidError(ValidationError):
    def __init__(self) -> None:
        super().__init__(message="Related party end date must be after the start date.")


class AliasClosingDateBeforeCreationError(ValidationError):
    def __init__(self) -> None:
        super().__init__(message="The closing date cannot be before the alias creation date.")


class HolderHasAliasesError(ValidationError):
    def __init__(self, holder_id: str, alias_count: int) -> None:
        super().__init__(
            message="The holder cannot be deleted because it has one or more associated aliases.",
            details={"holder_id": holder_id, "alias_count": alias_count},
        )


class InvalidQueryParameterError(ValidationError):
    def __init__(self, parameter: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid query parameter '{parameter}': {reason}",
            details={"parameter": parameter},
        )


class InvalidMetadataError(ValidationError):
    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid metadata entry '{key}': {reason}",
            details={"key": key},
        )


class InvalidFieldRemovalError(ValidationError):
    def __init__(self, field: str) -> None:
        super().__init__(
            message=f"Field '{field}' cannot be removed",
            details={"field": field},
        )


# ----- Internal Errors -----


class InternalError(CRMError):
    """Failure inside the service or one of its stores."""

    def __init__(self, message: str, *, entity: str, operation: str) -> None:
        super().__init__(message=message, details={"entity": entity, "operation": operation})


class EncryptionError(InternalError):
    """Field encryption or decryption failed."""

    pass


class PersistenceError(InternalError):
    """The store rejected or failed an operation in an unexpected way."""

    pass
