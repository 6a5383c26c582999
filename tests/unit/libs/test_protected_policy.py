# =============================================================================
# Unit Tests: Protected Field Policy
# =============================================================================

import pytest

from libs.rewriting import ProtectedFieldPolicy
from libs.stores import MongoAssetCatalog


@pytest.fixture
def catalog(mongo_db):
    mongo_db["attachments"].insert_many(
        [
            {"_id": 7, "file": "2024/01/logo.png"},
            {"_id": 42, "file": "2024/01/logo.webp"},
            {"_id": 8, "file": "2024/01/icon.jpg"},
            {"_id": 9, "file": "2024/01/uncatalogued.jpg"},
            {"_id": 10, "file": "2024/01/already.webp"},
        ]
    )
    return MongoAssetCatalog(mongo_db)


@pytest.fixture
def policy(catalog, resolver):
    return ProtectedFieldPolicy(["custom_logo", "site_icon"], catalog, resolver)


class TestProtectedFieldPolicy:
    """Protected identifiers only ever become other identifiers."""

    def test_membership(self, policy):
        assert "custom_logo" in policy
        assert "header_textcolor" not in policy

    def test_identifier_moves_to_migrated_asset(self, policy, make_upload):
        make_upload("2024/01/logo.png", "2024/01/logo.webp")

        result = policy.resolve(7)

        assert result.value == 42
        assert isinstance(result.value, int)
        assert result.changed is True
        assert result.replacements == 1

    def test_digit_string_stays_string(self, policy, make_upload):
        make_upload("2024/01/logo.png", "2024/01/logo.webp")

        result = policy.resolve("7")

        assert result.value == "42"

    def test_missing_migrated_file_keeps_identifier(self, policy, make_upload):
        make_upload("2024/01/icon.jpg")

        result = policy.resolve(8)

        assert result.value == 8
        assert result.changed is False
        assert result.skipped_no_target == 1

    def test_migrated_file_not_in_catalog_keeps_identifier(self, policy, make_upload):
        make_upload("2024/01/uncatalogued.webp")

        result = policy.resolve(9)

        assert result.value == 9
        assert result.changed is False

    def test_already_migrated_asset_untouched(self, policy):
        result = policy.resolve(10)

        assert result.value == 10
        assert result.changed is False

    @pytest.mark.parametrize(
        "value",
        [0, -3, True, "", "abc", None, "https://example.com/wp-content/uploads/2024/01/logo.png", 999],
    )
    def test_non_identifiers_and_unknown_ids_untouched(self, policy, make_upload, value):
        make_upload("2024/01/logo.png", "2024/01/logo.webp")

        result = policy.resolve(value)

        assert result.value is value or result.value == value
        assert result.changed is False
