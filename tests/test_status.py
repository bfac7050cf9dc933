"""Tests for StatusSnapshot and format_status."""

import dataclasses

import pytest

from gitpublish.status import STATUS_CODES, StatusSnapshot, format_status


class TestStatusSnapshot:
    def test_default_is_clean(self):
        snap = StatusSnapshot()
        assert snap.is_clean
        assert not snap.is_dirty

    @pytest.mark.parametrize("category", list(STATUS_CODES))
    def test_any_category_makes_dirty(self, category):
        snap = StatusSnapshot(**{category: frozenset({"x"})})
        assert snap.is_dirty

    def test_ten_categories_in_order(self):
        names = [name for name, _ in StatusSnapshot().categories()]
        assert names == list(STATUS_CODES)
        assert len(names) == 10

    def test_staged_and_unstaged(self):
        snap = StatusSnapshot(
            added=frozenset({"a"}), changed=frozenset({"c"}), removed=frozenset({"r"}),
            modified=frozenset({"m"}), missing=frozenset({"gone"}),
            untracked=frozenset({"new"}),
        )
        assert snap.staged == {"a", "c", "r"}
        assert snap.unstaged == {"m", "gone", "new"}

    def test_immutable(self):
        snap = StatusSnapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.added = frozenset({"x"})

    def test_to_dict_sorted(self):
        snap = StatusSnapshot(untracked=frozenset({"b", "a"}))
        d = snap.to_dict()
        assert d["untracked"] == ["a", "b"]
        assert d["added"] == []


class TestFormatStatus:
    def test_codes_and_grouping(self):
        snap = StatusSnapshot(
            added=frozenset({"n.txt"}),
            missing=frozenset({"gone.txt"}),
            untracked=frozenset({"z.txt", "y.txt"}),
        )
        assert format_status(snap).splitlines() == [
            "    | A n.txt",
            "    | # gone.txt",
            "    | u y.txt",
            "    | u z.txt",
        ]

    def test_clean_is_empty(self):
        assert format_status(StatusSnapshot()) == ""
