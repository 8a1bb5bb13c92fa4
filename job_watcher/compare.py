"""
Compare module for the Job Watcher pipeline.

This module computes a character-level edit script between the stored
snapshot of a source and its freshly normalized text, and decides whether
the snapshot has to be seeded, left alone or replaced.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from job_watcher.utils import get_logger


# Module logger
logger = get_logger("compare")

UNCHANGED = "unchanged"
ADDED = "added"
REMOVED = "removed"

# Snapshot outcomes
SEEDED = "seeded"
CHANGED = "changed"


@dataclass(frozen=True)
class DiffSegment:
    """
    A run of text classified by how it differs between two snapshots.

    Attributes:
        kind: One of 'unchanged', 'added' or 'removed'.
        text: The characters in the run.
    """
    kind: str
    text: str


def _common_prefix_length(a: str, b: str) -> int:
    limit = min(len(a), len(b))
    i = 0
    while i < limit and a[i] == b[i]:
        i += 1
    return i


def _common_suffix_length(a: str, b: str, prefix: int) -> int:
    limit = min(len(a), len(b)) - prefix
    i = 0
    while i < limit and a[-1 - i] == b[-1 - i]:
        i += 1
    return i


def _append(segments: List[DiffSegment], kind: str, text: str) -> None:
    """Append a run, merging it into the previous one if the kind matches."""
    if not text:
        return
    if segments and segments[-1].kind == kind:
        segments[-1] = DiffSegment(kind, segments[-1].text + text)
    else:
        segments.append(DiffSegment(kind, text))


def _boundary_score(left: str, right: str) -> int:
    """Score a cut between two strings; tag boundaries score highest."""
    if not left or not right:
        return 3
    if left[-1] == ">" and right[0] == "<":
        return 3
    if left[-1] == ">" or right[0] == "<":
        return 2
    if left[-1].isspace() or right[0].isspace():
        return 1
    return 0


def _slide_edit(left: str, edit: str, right: str) -> Tuple[str, str, str]:
    """
    Shift a pure insertion or deletion to the best-scoring position.

    Sliding never changes the old or new text the segments spell out, only
    where the edit's boundaries fall.
    """
    k = 0
    while k < len(left) and k < len(edit) and left[-1 - k] == edit[-1 - k]:
        k += 1
    if k:
        left, edit, right = left[:-k], left[-k:] + edit[:-k], edit[-k:] + right

    best = (left, edit, right)
    best_score = _boundary_score(left, edit) + _boundary_score(edit, right)

    while right and edit[0] == right[0]:
        left, edit, right = left + edit[0], edit[1:] + right[0], right[1:]
        score = _boundary_score(left, edit) + _boundary_score(edit, right)
        if score > best_score:
            best, best_score = (left, edit, right), score

    return best


def _align_edits(segments: List[DiffSegment]) -> List[DiffSegment]:
    """Align edits surrounded by unchanged runs to markup boundaries."""
    segments = list(segments)
    for i in range(1, len(segments) - 1):
        before, edit, after = segments[i - 1], segments[i], segments[i + 1]
        if before.kind != UNCHANGED or after.kind != UNCHANGED or edit.kind == UNCHANGED:
            continue
        left, middle, right = _slide_edit(before.text, edit.text, after.text)
        segments[i - 1] = DiffSegment(UNCHANGED, left)
        segments[i] = DiffSegment(edit.kind, middle)
        segments[i + 1] = DiffSegment(UNCHANGED, right)

    merged: List[DiffSegment] = []
    for segment in segments:
        _append(merged, segment.kind, segment.text)
    return merged


def _shortest_edit(a: str, b: str) -> List[Tuple[str, str]]:
    """
    Myers' O(ND) shortest edit script between two strings.

    Returns (kind, char) pairs with kind 'unchanged', 'removed' or
    'added'. The number of removed plus added characters is minimal.
    """
    n, m = len(a), len(b)
    v: Dict[int, int] = {1: 0}
    trace: List[Dict[int, int]] = []

    for d in range(n + m + 1):
        trace.append(dict(v))
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and v[k - 1] < v[k + 1]):
                x = v[k + 1]
            else:
                x = v[k - 1] + 1
            y = x - k
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1
            v[k] = x
            if x >= n and y >= m:
                return _backtrack(trace, a, b)

    return []


def _backtrack(trace: List[Dict[int, int]], a: str, b: str) -> List[Tuple[str, str]]:
    """Walk the saved frontiers back from the end to recover the edits."""
    x, y = len(a), len(b)
    edits: List[Tuple[str, str]] = []

    for d in range(len(trace) - 1, -1, -1):
        v = trace[d]
        k = x - y
        if k == -d or (k != d and v[k - 1] < v[k + 1]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = v[prev_k]
        prev_y = prev_x - prev_k

        while x > prev_x and y > prev_y:
            edits.append((UNCHANGED, a[x - 1]))
            x -= 1
            y -= 1

        if d > 0:
            if x == prev_x:
                edits.append((ADDED, b[y - 1]))
            else:
                edits.append((REMOVED, a[x - 1]))

        x, y = prev_x, prev_y

    edits.reverse()
    return edits


def _segments_from_edits(edits: List[Tuple[str, str]], segments: List[DiffSegment]) -> None:
    """Append edits as runs, listing removals before additions in each changed region."""
    removed: List[str] = []
    added: List[str] = []

    for kind, char in edits:
        if kind == REMOVED:
            removed.append(char)
        elif kind == ADDED:
            added.append(char)
        else:
            _append(segments, REMOVED, "".join(removed))
            _append(segments, ADDED, "".join(added))
            removed, added = [], []
            _append(segments, UNCHANGED, char)

    _append(segments, REMOVED, "".join(removed))
    _append(segments, ADDED, "".join(added))


def diff_text(old_text: str, new_text: str) -> List[DiffSegment]:
    """
    Compute a character-level edit script from old_text to new_text.

    The common prefix and suffix are matched directly; the middle goes
    through Myers' algorithm, so the total length of removed plus added
    text is minimal. Within a changed region the removed run precedes the
    added run. Single insertions and deletions are then slid
    onto tag boundaries, so an added element is reported as '<li>..</li>'
    rather than 'li>..</li><'. Adjacent runs of the same kind are merged.

    Args:
        old_text: Previously stored snapshot.
        new_text: Newly normalized text.

    Returns:
        Ordered list of DiffSegment. Identical inputs yield exactly one
        'unchanged' segment spanning the whole text.
    """
    if old_text == new_text:
        return [DiffSegment(UNCHANGED, new_text)]

    prefix = _common_prefix_length(old_text, new_text)
    suffix = _common_suffix_length(old_text, new_text, prefix)

    old_mid = old_text[prefix:len(old_text) - suffix]
    new_mid = new_text[prefix:len(new_text) - suffix]

    segments: List[DiffSegment] = []
    _append(segments, UNCHANGED, new_text[:prefix])

    _segments_from_edits(_shortest_edit(old_mid, new_mid), segments)

    _append(segments, UNCHANGED, new_text[len(new_text) - suffix:])
    return _align_edits(segments)


def is_unchanged(segments: List[DiffSegment]) -> bool:
    """Return True if the edit script signals no change."""
    return len(segments) == 1 and segments[0].kind == UNCHANGED


def added_runs(segments: List[DiffSegment]) -> List[str]:
    """Return the text of every 'added' segment, in order."""
    return [segment.text for segment in segments if segment.kind == ADDED]


def removed_runs(segments: List[DiffSegment]) -> List[str]:
    """Return the text of every 'removed' segment, in order."""
    return [segment.text for segment in segments if segment.kind == REMOVED]


def reconstruct_new(segments: List[DiffSegment]) -> str:
    return "".join(s.text for s in segments if s.kind in (UNCHANGED, ADDED))


def reconstruct_old(segments: List[DiffSegment]) -> str:
    return "".join(s.text for s in segments if s.kind in (UNCHANGED, REMOVED))


@dataclass
class SnapshotComparison:
    """
    Outcome of comparing a source's new text with its stored snapshot.

    Attributes:
        status: 'seeded', 'unchanged' or 'changed'.
        segments: Edit script, empty when the snapshot was seeded.
    """
    status: str
    segments: List[DiffSegment]

    @property
    def added(self) -> List[str]:
        return added_runs(self.segments)


def compare_and_update(store, key: str, new_text: str) -> SnapshotComparison:
    """
    Compare new_text with the stored snapshot and update the store.

    A missing snapshot is seeded with new_text and no diff is computed.
    The snapshot is only rewritten when the text actually changed.

    Args:
        store: Snapshot store exposing get(key) and put(key, text).
        key: Snapshot key (the source name).
        new_text: Normalized text from the current fetch.

    Returns:
        SnapshotComparison describing what happened.
    """
    previous: Optional[str] = store.get(key)

    if previous is None:
        store.put(key, new_text)
        logger.info(f"[{key}] No previous snapshot, seeded {len(new_text)} chars")
        return SnapshotComparison(status=SEEDED, segments=[])

    segments = diff_text(previous, new_text)

    if is_unchanged(segments):
        logger.info(f"[{key}] Unchanged since last snapshot")
        return SnapshotComparison(status=UNCHANGED, segments=segments)

    store.put(key, new_text)
    logger.info(
        f"[{key}] Changed: {len(added_runs(segments))} added run(s), "
        f"{len(removed_runs(segments))} removed run(s)"
    )
    return SnapshotComparison(status=CHANGED, segments=segments)
