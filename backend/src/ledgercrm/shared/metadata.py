"""Validation rules for free-form metadata and metadata filters.

Metadata is a string-keyed mapping whose values are strings, numbers,
booleans, or one level of nested mapping holding those scalars. Keys may not
contain dots or start with ``$`` because dotted paths address nested keys in
partial updates and filters.
"""

from collections.abc import Mapping
from typing import Any

from ledgercrm.shared.exceptions import InvalidMetadataError, InvalidQueryParameterError

MAX_KEY_LENGTH = 100
MAX_VALUE_LENGTH = 2000
METADATA_PREFIX = "metadata."

MetadataScalar = str | int | float | bool
MetadataValue = MetadataScalar | dict[str, MetadataScalar]
Metadata = dict[str, MetadataValue]


def _validate_key(key: Any) -> None:
    if not isinstance(key, str) or not key:
        raise InvalidMetadataError(str(key), "keys must be non-empty strings")
    if len(key) > MAX_KEY_LENGTH:
        raise InvalidMetadataError(key, f"keys are limited to {MAX_KEY_LENGTH} characters")
    if "." in key or key.startswith("$"):
        raise InvalidMetadataError(key, "keys cannot contain '.' or start with '$'")


def _validate_scalar(key: str, value: Any) -> None:
    if isinstance(value, str):
        if len(value) > MAX_VALUE_LENGTH:
            raise InvalidMetadataError(
                key, f"values are limited to {MAX_VALUE_LENGTH} characters"
            )
        return
    if not isinstance(value, (bool, int, float)):
        raise InvalidMetadataError(key, "values must be strings, numbers or booleans")


def validate_metadata(metadata: Mapping[str, Any] | None) -> None:
    """Reject metadata that does not fit the key/value rules."""
    if not metadata:
        return
    for key, value in metadata.items():
        _validate_key(key)
        if isinstance(value, Mapping):
            for nested_key, nested_value in value.items():
                _validate_key(nested_key)
                if isinstance(nested_value, Mapping):
                    raise InvalidMetadataError(
                        f"{key}.{nested_key}", "metadata supports one level of nesting"
                    )
                _validate_scalar(f"{key}.{nested_key}", nested_value)
        else:
            _validate_scalar(key, value)


def validate_metadata_filter(filters: Mapping[str, Any]) -> dict[str, MetadataScalar]:
    """Validate metadata equality filters keyed by path relative to ``metadata``.

    Filter values must be scalars; strings beginning with ``$`` are rejected
    so a value can never be read as a query operator.
    """
    validated: dict[str, MetadataScalar] = {}
    for path, value in filters.items():
        parameter = f"{METADATA_PREFIX}{path}"
        segments = path.split(".") if isinstance(path, str) else []
        if not segments or len(segments) > 2 or not all(segments):
            raise InvalidQueryParameterError(parameter, "invalid metadata key")
        if any(len(s) > MAX_KEY_LENGTH or s.startswith("$") for s in segments):
            raise InvalidQueryParameterError(parameter, "invalid metadata key")
        if value is None or isinstance(value, (Mapping, list, tuple, set)):
            raise InvalidQueryParameterError(parameter, "value must be a scalar")
        if isinstance(value, str) and (value.startswith("$") or len(value) > MAX_VALUE_LENGTH):
            raise InvalidQueryParameterError(parameter, "invalid metadata value")
        validated[path] = value
    return validated


def extract_metadata_filters(params: Mapping[str, str]) -> dict[str, str]:
    """Pick ``metadata.<key>`` entries out of raw query parameters."""
    return {
        key[len(METADATA_PREFIX) :]: value
        for key, value in params.items()
        if key.startswith(METADATA_PREFIX)
    }
