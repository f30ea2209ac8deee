"""
Tests for the shared merge contract and naming helpers.
"""

from types import SimpleNamespace

from hypothesis import given, strategies as st

from clerk_mirror.services.clerk_sync import SyncResult, merge_fields
from clerk_mirror.services.clerk_sync.base import build_display_name, non_empty


class TestMergeFields:
    """merge(existing, partial) keeps existing values for undefined fields."""

    def test_none_leaves_existing(self):
        record = SimpleNamespace(name="Ada", email="ada@example.com")

        changed = merge_fields(record, {"name": None, "email": "new@example.com"})

        assert changed == ["email"]
        assert record.name == "Ada"
        assert record.email == "new@example.com"

    def test_required_fields_always_assigned(self):
        record = SimpleNamespace(role="org:admin")

        merge_fields(record, {"role": None}, required=["role"])

        assert record.role is None

    def test_unchanged_values_not_reported(self):
        record = SimpleNamespace(name="Ada")

        assert merge_fields(record, {"name": "Ada"}) == []

    @given(
        existing=st.dictionaries(st.sampled_from("abcde"), st.integers(), min_size=5),
        partial=st.dictionaries(st.sampled_from("abcde"), st.one_of(st.none(), st.integers())),
    )
    def test_merge_property(self, existing, partial):
        """Every field ends up as partial's value when defined, else the existing one."""
        record = SimpleNamespace(**existing)

        merge_fields(record, partial)

        for name, old in existing.items():
            new = partial.get(name)
            assert getattr(record, name) == (old if new is None else new)


class TestHelpers:

    def test_sync_result_dict(self):
        assert SyncResult.ok("abc").to_dict() == {"success": True, "id": "abc"}
        assert SyncResult.failed("user_not_found").to_dict() == {
            "success": False,
            "reason": "user_not_found",
        }

    def test_non_empty(self):
        assert non_empty({}) is None
        assert non_empty(None) is None
        assert non_empty({"plan": "pro"}) == {"plan": "pro"}

    def test_display_name(self):
        assert build_display_name("Ada", "Lovelace") == "Ada Lovelace"
        assert build_display_name(" ", None, "", "ada@example.com") == "ada@example.com"
        assert build_display_name(None, None) == ""
