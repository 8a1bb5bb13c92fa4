"""
Aggregate module for the Job Watcher pipeline.

Collects the reportable additions of every source into an ordered digest
and renders it as the webhook payload. A payload is always produced: when
nothing changed it carries a "no changes" message and a placeholder embed.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from job_watcher.utils import Source, get_logger


# Module logger
logger = get_logger("aggregate")

FOUND_MESSAGE = "New job postings detected!"
NOT_FOUND_MESSAGE = "No new job postings detected"

# Discord webhook limits
MAX_EMBEDS = 10
MAX_DESCRIPTION_LENGTH = 4096
MAX_CONTENT_LENGTH = 2000
TRUNCATION_MARKER = "..."


@dataclass(frozen=True)
class DigestEntry:
    """One source's reportable addition."""
    source_name: str
    content: str


def aggregate(results: Sequence[Tuple[Source, Optional[str]]]) -> List[DigestEntry]:
    """
    Build the digest from per-source results.

    Args:
        results: (source, reportable text or None) pairs in configuration
            order.

    Returns:
        Digest entries for sources with a reportable text, in the same
        order as results.
    """
    digest = [
        DigestEntry(source_name=source.name, content=content)
        for source, content in results
        if content is not None
    ]
    logger.info(f"Digest has {len(digest)} of {len(results)} source(s)")
    return digest


def render_block(entry: DigestEntry) -> str:
    """Render an entry as a heading followed by a preformatted block."""
    return f"<h2>{entry.source_name}</h2><pre>{entry.content}</pre>"


def render_empty_block() -> str:
    return f"<h2>{NOT_FOUND_MESSAGE}</h2>"


def truncate_description(text: str, limit: int = MAX_DESCRIPTION_LENGTH) -> str:
    """
    Cut text to fit an embed description.

    Args:
        text: Rendered block.
        limit: Maximum number of characters.

    Returns:
        text unchanged if it fits, otherwise its head followed by '...'.
    """
    if len(text) <= limit:
        return text
    return text[:limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


def build_payload(digest: Sequence[DigestEntry]) -> Dict[str, Any]:
    """
    Render the digest into the webhook payload.

    Only the first MAX_EMBEDS entries get an embed; the rest are counted
    in the content line.

    Args:
        digest: Ordered digest entries.

    Returns:
        Dictionary with 'content' and 'embeds' keys.
    """
    if not digest:
        return {
            "content": NOT_FOUND_MESSAGE,
            "embeds": [{"description": render_empty_block()}],
        }

    shown = digest[:MAX_EMBEDS]
    content = FOUND_MESSAGE

    overflow = len(digest) - len(shown)
    if overflow > 0:
        logger.warning(f"Digest exceeds {MAX_EMBEDS} embeds, {overflow} source(s) not embedded")
        names = ", ".join(entry.source_name for entry in digest[MAX_EMBEDS:])
        content = truncate_description(
            f"{FOUND_MESSAGE} ... and {overflow} more source(s): {names}",
            limit=MAX_CONTENT_LENGTH
        )

    return {
        "content": content,
        "embeds": [
            {"description": truncate_description(render_block(entry))}
            for entry in shown
        ],
    }
