"""Unit tests for partial-update patches."""

from types import SimpleNamespace

import pytest

from ledgercrm.infrastructure.database.mappers.alias import (
    ALIAS_REMOVABLE_FIELDS,
    ALIAS_SEARCH_COLUMNS,
)
from ledgercrm.infrastructure.database.mappers.patch import (
    Patch,
    apply_patch,
    build_patch,
    flatten,
    to_snake_case,
)
from ledgercrm.shared.exceptions import InvalidFieldRemovalError


def alias_patch(document, fields_to_remove=()):
    return build_patch(
        document,
        fields_to_remove,
        removable=ALIAS_REMOVABLE_FIELDS,
        search_columns=ALIAS_SEARCH_COLUMNS,
    )


def stored_alias(**overrides):
    values = {
        "banking_details": {"branch": "0001", "account": "enc-acc", "iban": "enc-iban"},
        "regulatory_fields": {"participant_document": "enc-doc"},
        "related_parties": [{"document": "enc-rp"}],
        "metadata_": {"tier": "gold", "crm": {"owner": "ana", "team": "b2b"}},
        "search_banking_details_account": "tok-acc",
        "search_banking_details_iban": "tok-iban",
        "search_participant_document": "tok-doc",
        "search_related_party_documents": ["tok-rp"],
        "updated_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestFlatten:
    def test_nested_mappings_become_dotted_paths(self):
        assert flatten({"banking_details": {"branch": "0002"}, "related_parties": [1, 2]}) == {
            "banking_details.branch": "0002",
            "related_parties": [1, 2],
        }

    def test_empty_mapping_contributes_nothing(self):
        assert flatten({"metadata": {}, "banking_details": {"branch": "1"}}) == {
            "banking_details.branch": "1"
        }


class TestToSnakeCase:
    def test_camel_case_segments(self):
        assert to_snake_case("bankingDetails.closingDate") == "banking_details.closing_date"

    def test_metadata_keys_are_untouched(self):
        assert to_snake_case("metadata.someKey") == "metadata.someKey"


class TestBuildPatch:
    def test_rejects_non_removable_field(self):
        with pytest.raises(InvalidFieldRemovalError) as exc_info:
            alias_patch({}, ["account_id"])

        assert exc_info.value.details["field"] == "account_id"

    def test_removing_a_block_removes_its_search_tokens(self):
        patch = alias_patch({}, ["banking_details"])

        assert "banking_details" in patch.unset
        assert "search_banking_details_account" in patch.unset
        assert "search_banking_details_iban" in patch.unset
        assert "search_participant_document" not in patch.unset

    def test_removing_one_sensitive_field_removes_only_its_token(self):
        patch = alias_patch({}, ["bankingDetails.account"])

        assert patch.unset == ["banking_details.account", "search_banking_details_account"]

    def test_removal_wins_over_set(self):
        patch = alias_patch(
            {"metadata": {"tier": "silver"}, "banking_details": {"branch": "9"}},
            ["metadata.tier"],
        )

        assert "metadata.tier" not in patch.set
        assert patch.set == {"banking_details.branch": "9"}

    def test_empty_patch_is_falsy(self):
        assert not Patch()
        assert alias_patch({"banking_details": {"branch": "1"}})


class TestApplyPatch:
    def test_sibling_sub_fields_survive(self):
        record = stored_alias()

        apply_patch(record, alias_patch({"banking_details": {"branch": "0002"}}))

        assert record.banking_details == {
            "branch": "0002",
            "account": "enc-acc",
            "iban": "enc-iban",
        }

    def test_metadata_keys_merge_and_nested_keys_are_removable(self):
        record = stored_alias()

        apply_patch(record, alias_patch({"metadata": {"region": "south"}}, ["metadata.crm.team"]))

        assert record.metadata_ == {"tier": "gold", "region": "south", "crm": {"owner": "ana"}}

    def test_removed_columns_take_their_empty_value(self):
        record = stored_alias()

        apply_patch(record, alias_patch({}, ["metadata", "related_parties", "regulatory_fields"]))

        assert record.metadata_ == {}
        assert record.related_parties == []
        assert record.search_related_party_documents == []
        assert record.regulatory_fields is None
        assert record.search_participant_document is None

    def test_stored_json_is_not_mutated_in_place(self):
        original = {"branch": "0001", "account": "enc-acc"}
        record = stored_alias(banking_details=original)

        apply_patch(record, alias_patch({"banking_details": {"branch": "0002"}}))

        assert original == {"branch": "0001", "account": "enc-acc"}
        assert record.banking_details is not original
