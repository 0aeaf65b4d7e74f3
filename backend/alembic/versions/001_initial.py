"""Initial CRM schema: holders, aliases and holder links.

Uniqueness rules only cover live rows, so every unique index is partial on
``deleted_at IS NULL``. The predicate is emitted for PostgreSQL and SQLite.

Revision ID: 001_initial
Revises:
Create Date: 2025-01-15
"""

from collections.abc import Sequence
from typing import Any

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSON_DOCUMENT = sa.JSON(none_as_null=True).with_variant(
    postgresql.JSONB(none_as_null=True), "postgresql"
)


def live_rows_only(extra: str | None = None) -> dict[str, Any]:
    condition = "deleted_at IS NULL" if extra is None else f"deleted_at IS NULL AND {extra}"
    return {
        "postgresql_where": sa.text(condition),
        "sqlite_where": sa.text(condition),
    }


def common_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", JSON_DOCUMENT, nullable=False, server_default="{}"),
    ]


def upgrade() -> None:
    # Holders
    op.create_table(
        "holders",
        *common_columns(),
        sa.Column("external_id", sa.String(255), nullable=True),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("document", sa.String(), nullable=False),
        sa.Column("addresses", JSON_DOCUMENT, nullable=True),
        sa.Column("contact", JSON_DOCUMENT, nullable=True),
        sa.Column("natural_person", JSON_DOCUMENT, nullable=True),
        sa.Column("legal_person", JSON_DOCUMENT, nullable=True),
        sa.Column("search_document", sa.String(64), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_holders_organization_id", "holders", ["organization_id"])
    op.create_index("ix_holders_external_id", "holders", ["external_id"])
    op.create_index(
        "uq_holders_search_document",
        "holders",
        ["organization_id", "search_document"],
        unique=True,
        **live_rows_only(),
    )

    # Aliases
    op.create_table(
        "aliases",
        *common_columns(),
        sa.Column("ledger_id", sa.String(255), nullable=False),
        sa.Column("account_id", sa.String(255), nullable=False),
        sa.Column("holder_id", sa.Uuid(), nullable=False),
        sa.Column("holder_link_id", sa.Uuid(), nullable=True),
        sa.Column("type", sa.String(32), nullable=True),
        sa.Column("document", sa.String(), nullable=True),
        sa.Column("banking_details", JSON_DOCUMENT, nullable=True),
        sa.Column("regulatory_fields", JSON_DOCUMENT, nullable=True),
        sa.Column("related_parties", JSON_DOCUMENT, nullable=False, server_default="[]"),
        sa.Column("search_document", sa.String(64), nullable=True),
        sa.Column("search_banking_details_account", sa.String(64), nullable=True),
        sa.Column("search_banking_details_iban", sa.String(64), nullable=True),
        sa.Column("search_participant_document", sa.String(64), nullable=True),
        sa.Column(
            "search_related_party_documents", JSON_DOCUMENT, nullable=False, server_default="[]"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_aliases_organization_id", "aliases", ["organization_id"])
    op.create_index("ix_aliases_ledger_id", "aliases", ["ledger_id"])
    op.create_index("ix_aliases_holder_id", "aliases", ["holder_id"])
    # Exact-match lookups on HMAC search tokens
    op.create_index("ix_aliases_search_document", "aliases", ["search_document"])
    op.create_index(
        "ix_aliases_search_banking_details_account",
        "aliases",
        ["search_banking_details_account"],
    )
    op.create_index(
        "ix_aliases_search_banking_details_iban", "aliases", ["search_banking_details_iban"]
    )
    op.create_index(
        "ix_aliases_search_participant_document", "aliases", ["search_participant_document"]
    )
    if op.get_bind().dialect.name == "postgresql":
        op.create_index(
            "ix_aliases_search_related_party_documents",
            "aliases",
            ["search_related_party_documents"],
            postgresql_using="gin",
        )
    op.create_index(
        "uq_aliases_id_holder",
        "aliases",
        ["organization_id", "id", "holder_id"],
        unique=True,
        **live_rows_only(),
    )
    op.create_index(
        "uq_aliases_account_id",
        "aliases",
        ["organization_id", "account_id"],
        unique=True,
        **live_rows_only(),
    )
    op.create_index(
        "uq_aliases_ledger_account",
        "aliases",
        ["organization_id", "ledger_id", "account_id"],
        unique=True,
        **live_rows_only(),
    )

    # Holder links
    op.create_table(
        "holder_links",
        *common_columns(),
        sa.Column("holder_id", sa.Uuid(), nullable=False),
        sa.Column("alias_id", sa.Uuid(), nullable=False),
        sa.Column("link_type", sa.String(32), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_holder_links_organization_id", "holder_links", ["organization_id"])
    op.create_index("ix_holder_links_holder_id", "holder_links", ["holder_id"])
    op.create_index("ix_holder_links_alias_id", "holder_links", ["alias_id"])
    # At most one live link per (alias, type)
    op.create_index(
        "uq_holder_links_alias_link_type",
        "holder_links",
        ["organization_id", "alias_id", "link_type"],
        unique=True,
        **live_rows_only(),
    )
    # At most one live primary holder per alias
    op.create_index(
        "uq_holder_links_primary_holder",
        "holder_links",
        ["organization_id", "alias_id"],
        unique=True,
        **live_rows_only("link_type = 'PRIMARY_HOLDER'"),
    )


def downgrade() -> None:
    op.drop_table("holder_links")
    op.drop_table("aliases")
    op.drop_table("holders")
