"""Unit tests for unique-violation classification."""

import sqlite3

from sqlalchemy.exc import IntegrityError

from ledgercrm.infrastructure.database.conflicts import UniqueViolationError, as_unique_violation
from ledgercrm.shared.exceptions import ConflictError, InternalError


class FakeAsyncpgUniqueViolation(Exception):
    """Shape of asyncpg.exceptions.UniqueViolationError."""

    sqlstate = "23505"

    def __init__(self, message: str, constraint_name: str | None, detail: str | None = None):
        super().__init__(message)
        self.constraint_name = constraint_name
        self.detail = detail


def integrity_error(orig: BaseException) -> IntegrityError:
    return IntegrityError("INSERT INTO ...", {}, orig)


def asyncpg_error(constraint_name: str | None, detail: str | None = None) -> IntegrityError:
    # SQLAlchemy's asyncpg adapter raises its own error chained to the driver error
    cause = FakeAsyncpgUniqueViolation(
        "duplicate key value violates unique constraint", constraint_name, detail
    )
    adapted = Exception(f"<class 'asyncpg.exceptions.UniqueViolationError'>: {cause}")
    adapted.__cause__ = cause
    return integrity_error(adapted)


class TestAsUniqueViolation:
    def test_structured_constraint_name_wins(self):
        violation = as_unique_violation(
            asyncpg_error(
                "uq_aliases_account_id",
                detail="Key (organization_id, account_id)=(x, y) already exists.",
            ),
            entity="Alias",
            operation="create",
        )

        assert isinstance(violation, UniqueViolationError)
        assert violation.constraint == "uq_aliases_account_id"
        assert violation.columns == ("organization_id", "account_id")
        assert violation.details["entity"] == "Alias"

    def test_constraint_name_found_in_message(self):
        orig = Exception(
            'duplicate key value violates unique constraint "uq_holder_links_primary_holder"'
        )

        violation = as_unique_violation(integrity_error(orig), entity="HolderLink", operation="create")

        assert violation is not None
        assert violation.constraint == "uq_holder_links_primary_holder"

    def test_sqlite_columns_parsed(self):
        orig = sqlite3.IntegrityError(
            "UNIQUE constraint failed: holder_links.organization_id, holder_links.alias_id, "
            "holder_links.link_type"
        )

        violation = as_unique_violation(integrity_error(orig), entity="HolderLink", operation="create")

        assert violation is not None
        assert violation.constraint is None
        assert violation.columns == ("organization_id", "alias_id", "link_type")

    def test_other_integrity_errors_are_not_unique_violations(self):
        orig = sqlite3.IntegrityError("NOT NULL constraint failed: aliases.ledger_id")

        assert as_unique_violation(integrity_error(orig), entity="Alias", operation="create") is None


class TestUnrecognisedViolation:
    def test_is_a_conflict_not_an_internal_error(self):
        orig = sqlite3.IntegrityError("UNIQUE constraint failed: aliases.some_new_column")

        violation = as_unique_violation(integrity_error(orig), entity="Alias", operation="create")

        assert isinstance(violation, ConflictError)
        assert not isinstance(violation, InternalError)

    def test_http_status_is_409(self, app, client):
        async def write_rejected_by_new_index():
            raise UniqueViolationError(
                entity="Alias", operation="create", constraint="uq_aliases_new_rule", columns=()
            )

        app.add_api_route("/v1/conflicting-write", write_rejected_by_new_index)

        response = client.get("/v1/conflicting-write")

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "conflict"
        assert body["details"]["constraint"] == "uq_aliases_new_rule"
