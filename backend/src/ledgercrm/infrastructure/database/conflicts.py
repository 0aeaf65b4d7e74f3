"""Turn driver integrity errors into a structured unique-violation signal.

Preference order when identifying the violated constraint:

1. The constraint name the driver exposes as an attribute
   (asyncpg ``UniqueViolationError.constraint_name``, psycopg ``diag``).
2. A known constraint name appearing in the error text.
3. The conflicting key columns listed in the error text
   (PostgreSQL ``Key (a, b)=(...)``, SQLite ``UNIQUE constraint failed: t.a, t.b``).

Steps 2 and 3 depend on the driver's message format and are a known weak
point; they only run when no structured name is available.
"""

import re
from typing import Any

from sqlalchemy.exc import IntegrityError

from ledgercrm.shared.exceptions import ConflictError

_UNIQUE_SQLSTATE = "23505"
_CONSTRAINT_NAME_RE = re.compile(r"\b(uq_[a-z0-9_]+)\b")
_PG_KEY_RE = re.compile(r"Key \(([^)]*)\)=")
_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: (.+)$", re.MULTILINE)


class UniqueViolationError(ConflictError):
    """A write was rejected by a unique index.

    Repositories refine this into a business conflict where the index is
    known; an unrecognised index still surfaces as a conflict.
    """

    def __init__(
        self,
        *,
        entity: str,
        operation: str,
        constraint: str | None,
        columns: tuple[str, ...],
    ) -> None:
        super().__init__(
            message=f"{entity} {operation} conflicts with an existing record",
            details={
                "entity": entity,
                "operation": operation,
                "constraint": constraint,
                "columns": list(columns),
            },
        )
        self.constraint = constraint
        self.columns = columns


def _driver_errors(error: IntegrityError) -> list[Any]:
    orig = error.orig
    chain = [orig]
    cause = getattr(orig, "__cause__", None)
    if cause is not None:
        chain.append(cause)
    return chain


def _structured_constraint_name(chain: list[Any]) -> str | None:
    for exc in chain:
        name = getattr(exc, "constraint_name", None)
        if isinstance(name, str) and name:
            return name
        diag = getattr(exc, "diag", None)
        name = getattr(diag, "constraint_name", None)
        if isinstance(name, str) and name:
            return name
    return None


def _error_text(chain: list[Any]) -> str:
    parts: list[str] = []
    for exc in chain:
        parts.append(str(exc))
        detail = getattr(exc, "detail", None)
        if isinstance(detail, str):
            parts.append(detail)
    return "\n".join(parts)


def _is_unique_violation(chain: list[Any], text: str) -> bool:
    for exc in chain:
        if getattr(exc, "sqlstate", None) == _UNIQUE_SQLSTATE:
            return True
        if getattr(exc, "pgcode", None) == _UNIQUE_SQLSTATE:
            return True
    return "UNIQUE constraint failed" in text or "duplicate key" in text


def _key_columns(text: str) -> tuple[str, ...]:
    match = _PG_KEY_RE.search(text)
    if match is None:
        match = _SQLITE_UNIQUE_RE.search(text)
    if match is None:
        return ()
    columns = []
    for raw in match.group(1).split(","):
        column = raw.strip().split(".")[-1]
        if column:
            columns.append(column)
    return tuple(columns)


def as_unique_violation(
    error: IntegrityError, *, entity: str, operation: str
) -> UniqueViolationError | None:
    """Describe ``error`` as a unique violation, or None if it is something else."""
    chain = _driver_errors(error)
    text = _error_text(chain)
    if not _is_unique_violation(chain, text):
        return None

    constraint = _structured_constraint_name(chain)
    if constraint is None:
        match = _CONSTRAINT_NAME_RE.search(text)
        constraint = match.group(1) if match else None

    return UniqueViolationError(
        entity=entity,
        operation=operation,
        constraint=constraint,
        columns=_key_columns(text),
    )
