"""Partial updates expressed as dotted-path set/unset operations.

An update document such as ``{"banking_details": {"branch": "0001"}}`` is
flattened to ``{"banking_details.branch": "0001"}`` so sibling sub-fields
survive. ``fields_to_remove`` lists dotted paths to delete; anything below
``metadata.`` addresses individual metadata keys.
"""

import copy
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ledgercrm.shared.exceptions import InvalidFieldRemovalError

METADATA_FIELD = "metadata"

# Record attribute for each column whose Python name differs
_ATTRIBUTE_NAMES = {METADATA_FIELD: "metadata_"}

# Value a column takes when removed entirely
_EMPTY_VALUES: dict[str, Callable[[], Any]] = {
    METADATA_FIELD: dict,
    "related_parties": list,
    "search_related_party_documents": list,
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


@dataclass
class Patch:
    set: dict[str, Any] = field(default_factory=dict)
    unset: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.set or self.unset)


def attribute_name(column: str) -> str:
    return _ATTRIBUTE_NAMES.get(column, column)


R = TypeVar("R")


def new_record(model_class: type[R], document: Mapping[str, Any]) -> R:
    """Instantiate an ORM record from a column-keyed document."""
    return model_class(**{attribute_name(k): v for k, v in document.items()})


def to_snake_case(path: str) -> str:
    """Snake-case each path segment, leaving metadata keys untouched."""
    if path == METADATA_FIELD or path.startswith(f"{METADATA_FIELD}."):
        return path
    return ".".join(_CAMEL_BOUNDARY.sub(r"_\1", segment).lower() for segment in path.split("."))


def flatten(document: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted paths. Lists stay whole."""
    flat: dict[str, Any] = {}
    for key, value in document.items():
        path = f"{prefix}{key}"
        if isinstance(value, Mapping) and value:
            flat.update(flatten(value, prefix=f"{path}."))
        elif isinstance(value, Mapping):
            # An empty mapping contributes nothing to a partial update
            continue
        else:
            flat[path] = value
    return flat


def _covers(removed: str, path: str) -> bool:
    return path == removed or path.startswith(f"{removed}.")


def build_patch(
    document: Mapping[str, Any],
    fields_to_remove: Iterable[str] = (),
    *,
    removable: frozenset[str],
    search_columns: Mapping[str, str] | None = None,
) -> Patch:
    """Combine an update document and removal paths into one patch.

    ``removable`` names the top-level fields callers may remove.
    ``search_columns`` maps a sensitive path to its search-token column; the
    token is removed together with (or together with a parent of) that path.
    Removal wins when a path is both set and removed.
    """
    unset: list[str] = []
    for raw in fields_to_remove:
        path = to_snake_case(raw.strip())
        if not path or path.split(".")[0] not in removable:
            raise InvalidFieldRemovalError(raw)
        if path not in unset:
            unset.append(path)

    for sensitive, column in (search_columns or {}).items():
        if column not in unset and any(_covers(removed, sensitive) for removed in unset):
            unset.append(column)

    flat = flatten(document)
    set_ = {
        path: value
        for path, value in flat.items()
        if not any(_covers(removed, path) for removed in unset)
    }
    return Patch(set=set_, unset=unset)


def _assign(container: dict[str, Any], segments: list[str], value: Any) -> None:
    node = container
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    node[segments[-1]] = value


def _discard(container: dict[str, Any], segments: list[str]) -> None:
    node: Any = container
    for segment in segments[:-1]:
        node = node.get(segment) if isinstance(node, dict) else None
        if node is None:
            return
    if isinstance(node, dict):
        node.pop(segments[-1], None)


def apply_patch(record: Any, patch: Patch) -> None:
    """Apply a patch to an ORM record in place.

    JSON columns are copied before mutation and reassigned so the ORM sees
    the change.
    """
    staged: dict[str, Any] = {}

    def current(column: str) -> Any:
        if column not in staged:
            staged[column] = copy.deepcopy(getattr(record, attribute_name(column)))
        return staged[column]

    for path, value in patch.set.items():
        column, *rest = path.split(".")
        if not rest:
            staged[column] = value
            continue
        container = current(column)
        if not isinstance(container, dict):
            container = {}
            staged[column] = container
        _assign(container, rest, value)

    for path in patch.unset:
        column, *rest = path.split(".")
        if not rest:
            empty = _EMPTY_VALUES.get(column)
            staged[column] = empty() if empty else None
            continue
        container = current(column)
        if isinstance(container, dict):
            _discard(container, rest)

    for column, value in staged.items():
        setattr(record, attribute_name(column), value)
