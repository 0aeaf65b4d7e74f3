"""Shared machinery for entity <-> record mapping.

Nested value objects (banking details, contact, related parties...) are
stored as JSON blocks. A block is described by its dataclass plus the set of
dotted paths inside it that must be encrypted.
"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import fields, is_dataclass
from datetime import UTC, date, datetime
from enum import Enum
from functools import cache
from typing import Any, TypeVar, get_args, get_type_hints
from uuid import UUID

from ledgercrm.shared.crypto import FieldCipher, get_field_cipher
from ledgercrm.shared.exceptions import EncryptionError

B = TypeVar("B")


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize timestamps read back from the store (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utcnow() -> datetime:
    return datetime.now(UTC)


@cache
def _field_hints(cls: type) -> dict[str, Any]:
    return get_type_hints(cls)


def _unwrap(hint: Any) -> tuple[Any, ...]:
    return get_args(hint) or (hint,)


def _nested_dataclass(hint: Any) -> type | None:
    for arg in _unwrap(hint):
        if isinstance(arg, type) and is_dataclass(arg):
            return arg
    return None


class DocumentMapper:
    """Base class for the per-entity mappers."""

    entity_name = "Entity"

    def __init__(self, cipher: FieldCipher | None = None) -> None:
        self.cipher = cipher or get_field_cipher()

    @contextmanager
    def codec_errors(self, operation: str) -> Iterator[None]:
        """Re-raise codec failures with the entity and operation attached."""
        try:
            yield
        except EncryptionError as e:
            raise EncryptionError(
                f"Failed to map {self.entity_name} ({operation})",
                entity=self.entity_name,
                operation=operation,
            ) from e

    def search_token(self, value: str | None) -> str | None:
        if not value:
            return None
        return self.cipher.hash(value)

    def seal_block(
        self,
        block: Any | None,
        encrypted: frozenset[str] = frozenset(),
        *,
        partial: bool = False,
        prefix: str = "",
    ) -> dict[str, Any] | None:
        """Convert a value object into a JSON-safe dict, encrypting ``encrypted`` paths.

        With ``partial`` set, unset (None) attributes are left out so a patch
        only touches the sub-fields the caller provided.
        """
        if block is None:
            return None
        return self.seal_fields(block, encrypted, partial=partial, prefix=prefix)

    def seal_fields(
        self,
        block: Any,
        encrypted: frozenset[str] = frozenset(),
        *,
        partial: bool = False,
        prefix: str = "",
    ) -> dict[str, Any]:
        sealed: dict[str, Any] = {}
        for f in fields(block):
            value = getattr(block, f.name)
            path = f"{prefix}{f.name}"
            if value is None:
                if not partial:
                    sealed[f.name] = None
                continue
            if is_dataclass(value):
                sealed[f.name] = self.seal_fields(
                    value, encrypted, partial=partial, prefix=f"{path}."
                )
            elif path in encrypted:
                sealed[f.name] = self.cipher.encrypt(value)
            elif isinstance(value, date):
                sealed[f.name] = value.isoformat()
            elif isinstance(value, UUID):
                sealed[f.name] = str(value)
            elif isinstance(value, Enum):
                sealed[f.name] = value.value
            else:
                sealed[f.name] = value
        return sealed

    def open_block(
        self,
        data: Mapping[str, Any] | None,
        cls: type[B],
        encrypted: frozenset[str] = frozenset(),
        *,
        prefix: str = "",
    ) -> B | None:
        """Inverse of :meth:`seal_block`; unknown stored keys are ignored."""
        if data is None:
            return None

        hints = _field_hints(cls)
        values: dict[str, Any] = {}
        for f in fields(cls):  # type: ignore[arg-type]
            if f.name not in data:
                continue
            raw = data[f.name]
            path = f"{prefix}{f.name}"
            hint = hints[f.name]
            if raw is None:
                values[f.name] = None
                continue
            nested = _nested_dataclass(hint)
            if nested is not None:
                values[f.name] = self.open_block(raw, nested, encrypted, prefix=f"{path}.")
            elif path in encrypted:
                values[f.name] = self.cipher.decrypt(raw)
            elif date in _unwrap(hint):
                values[f.name] = date.fromisoformat(raw)
            elif UUID in _unwrap(hint):
                values[f.name] = UUID(raw)
            else:
                values[f.name] = raw
        return cls(**values)
