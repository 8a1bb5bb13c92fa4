"""
Normalize module for the Job Watcher pipeline.

Strips markup that changes between polls without carrying content
(scripts, styles, navigation, comments, icons and inline graphics) so two
fetches of an unchanged page compare equal. Everything is done with
regular expressions: markup that doesn't match a pattern is passed through
untouched, so normalization never fails.
"""

import re
from typing import List, Pattern

from job_watcher.utils import get_logger


# Module logger
logger = get_logger("normalize")


def _block(tag: str) -> Pattern[str]:
    """Pattern matching a whole <tag ...>...</tag> block, case-insensitively."""
    return re.compile(
        rf"<{tag}\b[^>]*>.*?</{tag}\s*>",
        re.IGNORECASE | re.DOTALL
    )


# Comments go first so commented-out blocks can't confuse the block patterns
COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)

BLOCK_PATTERNS: List[Pattern[str]] = [
    _block("script"),
    _block("noscript"),
    _block("style"),
    _block("nav"),
    _block("footer"),
    _block("svg"),
    _block("symbol"),
    _block("template"),
]

# Decorative void/self-closing tags and presentation-only attributes
DECORATIVE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"<(?:path|use|meta|link)\b[^>]*/?>", re.IGNORECASE),
    re.compile(r"\s+fill\s*=\s*(?:\"[^\"]*\"|'[^']*')", re.IGNORECASE),
]

WHITESPACE_PATTERN = re.compile(r"[\t\r\n]")


def strip_comments(markup: str) -> str:
    """Remove HTML comments."""
    return COMMENT_PATTERN.sub("", markup)


def strip_blocks(markup: str) -> str:
    """Remove script, style, navigation, footer and inline graphics blocks."""
    for pattern in BLOCK_PATTERNS:
        markup = pattern.sub("", markup)
    return markup


def strip_decorative(markup: str) -> str:
    """Remove decorative tags and fill attributes."""
    for pattern in DECORATIVE_PATTERNS:
        markup = pattern.sub("", markup)
    return markup


def normalize(raw_markup: str) -> str:
    """
    Reduce fetched markup to its comparable content form.

    Args:
        raw_markup: Raw page body as fetched.

    Returns:
        Markup with non-content blocks and literal tabs/newlines removed.
    """
    if not raw_markup:
        return ""

    text = strip_comments(raw_markup)
    text = strip_blocks(text)
    text = strip_decorative(text)
    text = WHITESPACE_PATTERN.sub("", text)

    logger.debug(f"Normalized {len(raw_markup)} chars to {len(text)} chars")
    return text
