"""
Filter module for the Job Watcher pipeline.

This module decides whether the text added to a page since the last poll
is worth reporting. Each rule is a separate predicate so it can be tuned
without touching the diff or aggregation code:
- Numeric-only additions (counters, dates) are noise
- Additions with more digits than letters are noise
- Additions without any markup are incidental (optional)
- Markup without any visible text is noise (optional)
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup

from job_watcher.utils import get_logger


# Module logger
logger = get_logger("filter")

NON_DIGIT_PATTERN = re.compile(r"[^0-9]")
NON_LETTER_PATTERN = re.compile(r"[^a-zA-Z]")

MARKUP_DELIMITER = "<"
RUN_SEPARATOR = " "


@dataclass(frozen=True)
class FilterPolicy:
    """
    Switches for the optional noise rules.

    Attributes:
        require_markup: Reject additions that contain no '<' at all.
        require_visible_text: Reject additions whose markup renders to no
            letters.
    """
    require_markup: bool = True
    require_visible_text: bool = False


def count_digits(text: str) -> int:
    return len(NON_DIGIT_PATTERN.sub("", text))


def count_letters(text: str) -> int:
    return len(NON_LETTER_PATTERN.sub("", text))


def is_numeric_only(text: str) -> bool:
    """
    Check if text consists of nothing but digits.

    The empty string counts as numeric-only, so an empty addition is never
    reported.
    """
    return NON_DIGIT_PATTERN.sub("", text) == text


def is_digit_dominated(text: str) -> bool:
    """Check if text has more digit characters than ASCII letters."""
    return count_digits(text) > count_letters(text)


def has_markup(text: str) -> bool:
    """Check if text contains a markup delimiter."""
    return MARKUP_DELIMITER in text


def has_visible_text(text: str) -> bool:
    """
    Check if markup renders to at least one letter.

    Args:
        text: Markup fragment (may be unbalanced).

    Returns:
        True if the text content of the fragment contains a letter.
    """
    visible = BeautifulSoup(text, "html.parser").get_text()
    return count_letters(visible) > 0


def join_runs(added_runs: Sequence[str]) -> str:
    """Join added runs into one reportable string."""
    return RUN_SEPARATOR.join(added_runs)


def rejection_reason(
    added_runs: Sequence[str],
    policy: Optional[FilterPolicy] = None
) -> Optional[str]:
    """
    Return why an addition is noise, or None if it is reportable.

    The rules look at the concatenation of the runs.

    Args:
        added_runs: Text of the 'added' diff segments for one source.
        policy: Optional rules to apply. Defaults to FilterPolicy().

    Returns:
        Short reason string, or None.
    """
    policy = policy or FilterPolicy()
    text = "".join(added_runs)

    if is_numeric_only(text):
        return "numeric only"

    if is_digit_dominated(text):
        return "more digits than letters"

    if policy.require_markup and not has_markup(text):
        return "no markup"

    if policy.require_visible_text and not has_visible_text(text):
        return "no visible text"

    return None


def is_reportable(
    added_runs: Sequence[str],
    policy: Optional[FilterPolicy] = None
) -> bool:
    """Return True if the added runs survive every noise rule."""
    return rejection_reason(added_runs, policy) is None


def filter_additions(
    source_name: str,
    added_runs: List[str],
    policy: Optional[FilterPolicy] = None
) -> Optional[str]:
    """
    Apply the noise rules to one source's additions.

    Args:
        source_name: Name of the source, for logging.
        added_runs: Text of the 'added' diff segments.
        policy: Optional rules to apply.

    Returns:
        The runs joined with a single space, or None if filtered out.
    """
    reason = rejection_reason(added_runs, policy)
    if reason is not None:
        logger.info(f"[{source_name}] Addition filtered as noise: {reason}")
        return None

    logger.info(f"[{source_name}] Reportable addition across {len(added_runs)} run(s)")
    return join_runs(added_runs)
