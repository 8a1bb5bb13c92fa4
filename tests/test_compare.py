"""
Tests for the compare module.

Tests cover:
- Character-level diffing and segment classification
- The single-segment "no change" signal
- Alignment of added elements to tag boundaries
- Seeding, leaving and replacing snapshots
- Minimal edit length against an LCS bound
"""

import random

import pytest
from unittest.mock import MagicMock

from job_watcher.compare import (
    ADDED,
    CHANGED,
    REMOVED,
    SEEDED,
    UNCHANGED,
    DiffSegment,
    added_runs,
    compare_and_update,
    diff_text,
    is_unchanged,
    reconstruct_new,
    reconstruct_old,
    removed_runs,
)
from job_watcher.store import MemorySnapshotStore


class TestDiffText:
    """Tests for the diff engine."""

    def test_identical_text_is_one_unchanged_segment(self):
        """Test that equal inputs give exactly one unchanged segment."""
        segments = diff_text("<p>Same</p>", "<p>Same</p>")

        assert segments == [DiffSegment(UNCHANGED, "<p>Same</p>")]
        assert is_unchanged(segments) is True

    def test_identical_empty_text(self):
        """Test that two empty strings still give one segment."""
        assert diff_text("", "") == [DiffSegment(UNCHANGED, "")]

    def test_appended_list_item(self):
        """Test that a new list item is reported as a whole element."""
        old = "<ul><li>Engineer</li></ul>"
        new = "<ul><li>Engineer</li><li>Designer</li></ul>"

        segments = diff_text(old, new)

        assert segments == [
            DiffSegment(UNCHANGED, "<ul><li>Engineer</li>"),
            DiffSegment(ADDED, "<li>Designer</li>"),
            DiffSegment(UNCHANGED, "</ul>"),
        ]

    def test_prepended_list_item(self):
        """Test that an item inserted first is aligned to tag boundaries."""
        old = "<ul><li>Engineer</li></ul>"
        new = "<ul><li>Analyst</li><li>Engineer</li></ul>"

        assert added_runs(diff_text(old, new)) == ["<li>Analyst</li>"]

    def test_removed_item(self):
        """Test that a deleted item is classified as removed."""
        old = "<ul><li>Engineer</li><li>Designer</li></ul>"
        new = "<ul><li>Engineer</li></ul>"

        segments = diff_text(old, new)

        assert added_runs(segments) == []
        assert removed_runs(segments) == ["<li>Designer</li>"]

    def test_from_empty_old_text(self):
        """Test that everything is added when the old text is empty."""
        assert diff_text("", "abc") == [DiffSegment(ADDED, "abc")]

    def test_to_empty_new_text(self):
        """Test that everything is removed when the new text is empty."""
        assert diff_text("abc", "") == [DiffSegment(REMOVED, "abc")]

    def test_replacement_lists_removed_before_added(self):
        """Test that a changed word yields removed then added runs."""
        segments = diff_text("<b>cat</b>", "<b>dog</b>")
        kinds = [s.kind for s in segments]

        assert kinds.index(REMOVED) < kinds.index(ADDED)

    def test_adjacent_segments_never_share_a_kind(self):
        """Test that runs of the same kind are merged."""
        segments = diff_text("<p>a1b2c3</p>", "<p>a9b8c7 new</p>")

        for left, right in zip(segments, segments[1:]):
            assert left.kind != right.kind

    @pytest.mark.parametrize("old,new", [
        ("<ul><li>Engineer</li></ul>", "<ul><li>Engineer</li><li>Designer</li></ul>"),
        ("Jobs: 12 open", "Jobs: 14 open, apply now"),
        ("<div>aaaa</div>", "<div>aaXaa</div><div>aaaa</div>"),
        ("abcdef", "fedcba"),
        ("", "<p>first</p>"),
    ])
    def test_segments_reconstruct_both_texts(self, old, new):
        """Test that segments spell out the old and new text."""
        segments = diff_text(old, new)

        assert reconstruct_new(segments) == new
        assert reconstruct_old(segments) == old

    def test_long_repetitive_markup(self):
        """Test that repeated characters in long pages are still matched."""
        old = "<li>Role</li>" * 100
        new = old + "<li>Staff Engineer</li>"

        segments = diff_text(old, new)

        assert added_runs(segments) == ["<li>Staff Engineer</li>"]
        assert removed_runs(segments) == []


class TestCompareAndUpdate:
    """Tests for snapshot seeding and replacement."""

    def test_seeds_missing_snapshot(self):
        """Test that the first observation is stored and not diffed."""
        store = MemorySnapshotStore()

        result = compare_and_update(store, "Jobs", "<p>Hello</p>")

        assert result.status == SEEDED
        assert result.segments == []
        assert result.added == []
        assert store.get("Jobs") == "<p>Hello</p>"

    def test_unchanged_snapshot_not_rewritten(self):
        """Test that an unchanged page doesn't touch the store."""
        store = MagicMock()
        store.get.return_value = "<p>Hello</p>"

        result = compare_and_update(store, "Jobs", "<p>Hello</p>")

        assert result.status == UNCHANGED
        store.put.assert_not_called()

    def test_changed_snapshot_replaced(self):
        """Test that a changed page replaces the snapshot."""
        store = MemorySnapshotStore({"Jobs": "<ul><li>Engineer</li></ul>"})
        new = "<ul><li>Engineer</li><li>Designer</li></ul>"

        result = compare_and_update(store, "Jobs", new)

        assert result.status == CHANGED
        assert result.added == ["<li>Designer</li>"]
        assert store.get("Jobs") == new

    def test_removal_only_still_replaces_snapshot(self):
        """Test that a page that only lost content is still re-stored."""
        store = MemorySnapshotStore({"Jobs": "<p>a</p><p>b</p>"})

        result = compare_and_update(store, "Jobs", "<p>a</p>")

        assert result.status == CHANGED
        assert result.added == []
        assert store.get("Jobs") == "<p>a</p>"


def lcs_length(a, b):
    """Length of the longest common subsequence, by dynamic programming."""
    previous = [0] * (len(b) + 1)
    for char_a in a:
        current = [0]
        for j, char_b in enumerate(b):
            if char_a == char_b:
                current.append(previous[j] + 1)
            else:
                current.append(max(previous[j + 1], current[j]))
        previous = current
    return previous[-1]


def edit_length(segments):
    return sum(len(s.text) for s in segments if s.kind in (ADDED, REMOVED))


class TestDiffMinimality:
    """Tests that the edit script is as short as possible."""

    def test_renamed_role_has_minimal_edits(self):
        """Test a changed word against the shortest possible edit."""
        old = "<ul><li>Senior</li></ul>"
        new = "<ul><li>Engineer</li></ul>"

        segments = diff_text(old, new)

        assert edit_length(segments) == 8
        assert "".join(added_runs(segments)) == "Egnee"

    @pytest.mark.parametrize("old,new", [
        ("<ul><li>Senior</li></ul>", "<ul><li>Engineer</li></ul>"),
        ("/lbiii>>//lb>", "><l>iblai><lb"),
        ("<div class=\"jobs\"><h3>Backend</h3><p>Remote</p></div>",
         "<div class=\"jobs\"><h3>Frontend</h3><p>Berlin, hybrid</p><p>Remote</p></div>"),
        ("<table><tr><td>12</td><td>Ops</td></tr></table>",
         "<table><tr><td>31</td><td>Platform Ops</td></tr><tr><td>2</td></tr></table>"),
        ("<p>Posted 3 days ago</p><a href=\"/a\">Apply</a>",
         "<a href=\"/b\">Apply now</a><p>Posted today</p>"),
    ])
    def test_edit_length_matches_lcs(self, old, new):
        """Test that added plus removed length equals the LCS bound."""
        segments = diff_text(old, new)

        assert edit_length(segments) == len(old) + len(new) - 2 * lcs_length(old, new)
        assert reconstruct_new(segments) == new
        assert reconstruct_old(segments) == old

    def test_random_strings_are_minimal(self):
        """Test minimality on a fixed set of small random strings."""
        rng = random.Random(1234)
        alphabet = "<>/lbia "

        for _ in range(200):
            old = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 14)))
            new = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 14)))

            segments = diff_text(old, new)

            assert edit_length(segments) == len(old) + len(new) - 2 * lcs_length(old, new)
            assert reconstruct_new(segments) == new
            assert reconstruct_old(segments) == old
