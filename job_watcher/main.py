#!/usr/bin/env python3
"""
Main orchestration module for the Job Watcher pipeline.

One cycle runs, for every configured source concurrently:
fetch → normalize → seed or diff against the stored snapshot → filter
and then, once all sources are done:
aggregate → notify

Per-source failures are not isolated: the first one (in source order)
aborts the cycle. Notifier failures only turn the cycle's status to
unsuccessful.
"""

import json
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from job_watcher.aggregate import DigestEntry, aggregate, build_payload
from job_watcher.compare import compare_and_update, CHANGED
from job_watcher.fetch import HttpFetcher, FetchError
from job_watcher.filter import FilterPolicy, filter_additions
from job_watcher.normalize import normalize
from job_watcher.notify import DiscordNotifier, NotifyResult
from job_watcher.store import JsonSnapshotStore, StoreError, DEFAULT_SNAPSHOT_PATH
from job_watcher.utils import (
    Source,
    get_env_flag,
    get_env_int,
    get_env_var,
    get_logger,
    load_sources_config,
    setup_logging,
)


# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_ENV_ERROR = 2


@dataclass
class SourceOutcome:
    """
    What happened to one source during a cycle.

    Attributes:
        source: The source processed.
        status: 'seeded', 'unchanged' or 'changed'.
        content: Reportable addition, or None.
    """
    source: Source
    status: str
    content: Optional[str] = None


@dataclass
class CycleReport:
    """Result of one pipeline cycle."""
    outcomes: List[SourceOutcome]
    digest: List[DigestEntry]
    payload: Dict[str, Any]
    notify_result: Optional[NotifyResult] = None
    dry_run: bool = False

    @property
    def success(self) -> bool:
        if self.dry_run:
            return True
        return self.notify_result is not None and self.notify_result.ok


def process_source(
    source: Source,
    fetcher,
    store,
    policy: Optional[FilterPolicy] = None
) -> SourceOutcome:
    """
    Run fetch, normalize, compare and filter for a single source.

    Args:
        source: Source to process.
        fetcher: Fetch adapter exposing fetch(url) -> str.
        store: Snapshot store exposing get(key) and put(key, text).
        policy: Noise filter policy.

    Returns:
        SourceOutcome for the source.

    Raises:
        FetchError: If the page cannot be fetched.
        StoreError: If the snapshot cannot be read or written.
    """
    raw = fetcher.fetch(source.url)
    text = normalize(raw)

    comparison = compare_and_update(store, source.name, text)
    if comparison.status != CHANGED:
        return SourceOutcome(source=source, status=comparison.status)

    content = filter_additions(source.name, comparison.added, policy)
    return SourceOutcome(source=source, status=CHANGED, content=content)


def run_cycle(
    sources: Sequence[Source],
    fetcher,
    store,
    notifier=None,
    policy: Optional[FilterPolicy] = None,
    max_workers: Optional[int] = None,
    dry_run: bool = False
) -> CycleReport:
    """
    Execute one polling cycle over all sources.

    One task is submitted per source; results are collected in source
    order, so the digest follows configuration order no matter which
    task finishes first.

    Args:
        sources: Ordered, immutable source list.
        fetcher: Fetch adapter.
        store: Snapshot store adapter.
        notifier: Notifier adapter exposing send(payload) -> NotifyResult.
            May be None only when dry_run is True.
        policy: Noise filter policy.
        max_workers: Upper bound on concurrent source tasks.
        dry_run: If True, build the payload but don't send it.

    Returns:
        CycleReport for the cycle.

    Raises:
        FetchError: If any source page cannot be fetched.
        StoreError: If any snapshot cannot be read or written.
        ValueError: If no notifier is given outside dry-run mode.
    """
    logger = get_logger("main")

    if notifier is None and not dry_run:
        raise ValueError("A notifier is required unless running in dry-run mode")

    workers = max(1, min(max_workers or len(sources), len(sources)))
    logger.info(f"Processing {len(sources)} source(s) with {workers} worker(s)")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(process_source, source, fetcher, store, policy)
            for source in sources
        ]
        # result() re-raises the task's exception; the executor still
        # waits for the remaining tasks before leaving the block
        outcomes = [future.result() for future in futures]

    digest = aggregate([(outcome.source, outcome.content) for outcome in outcomes])
    payload = build_payload(digest)

    if dry_run:
        logger.info(f"[DRY RUN] Payload not sent: {json.dumps(payload)[:500]}")
        return CycleReport(outcomes=outcomes, digest=digest, payload=payload, dry_run=True)

    result = notifier.send(payload)
    if result.ok:
        logger.info(f"Notification sent with {len(payload['embeds'])} embed(s)")
    else:
        logger.error(f"Notification failed (status={result.status_code}): {result.detail}")

    return CycleReport(outcomes=outcomes, digest=digest, payload=payload, notify_result=result)


def get_snapshot_filepath() -> str:
    """Return the snapshot file path from SNAPSHOT_PATH or the default."""
    return get_env_var("SNAPSHOT_PATH", required=False, default=DEFAULT_SNAPSHOT_PATH)


def get_filter_policy() -> FilterPolicy:
    """Build the noise filter policy from environment flags."""
    return FilterPolicy(
        require_markup=get_env_flag("REQUIRE_MARKUP", default=True),
        require_visible_text=get_env_flag("REQUIRE_VISIBLE_TEXT", default=False),
    )


def run_pipeline(dry_run: bool = False) -> int:
    """
    Execute one cycle with adapters built from the environment.

    Args:
        dry_run: If True, skip the webhook call.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    logger = get_logger("main")

    logger.info("=" * 60)
    logger.info("Job Watcher Pipeline - Starting")
    logger.info("=" * 60)

    logger.info("[Stage 1/3] Loading configuration...")
    sources = load_sources_config()
    if not sources:
        logger.warning("No sources configured, only the empty digest will be sent")

    notifier = None
    if not dry_run:
        try:
            webhook_url = get_env_var("DISCORD_WEBHOOK", required=True)
        except ValueError as e:
            logger.error(f"Configuration error: {e}")
            return EXIT_ENV_ERROR
        notifier = DiscordNotifier(webhook_url)

    store = JsonSnapshotStore(get_snapshot_filepath())

    logger.info("[Stage 2/3] Polling sources...")
    try:
        with HttpFetcher() as fetcher:
            report = run_cycle(
                sources,
                fetcher,
                store,
                notifier,
                policy=get_filter_policy(),
                max_workers=get_env_int("MAX_WORKERS"),
                dry_run=dry_run
            )
    except (FetchError, StoreError) as e:
        logger.error(f"Cycle aborted: {e}")
        return EXIT_FAILURE
    finally:
        if notifier is not None:
            notifier.close()

    logger.info("[Stage 3/3] Summary")
    changed = sum(1 for outcome in report.outcomes if outcome.status == CHANGED)
    logger.info(
        f"Summary: {len(report.outcomes)} source(s), {changed} changed, "
        f"{len(report.digest)} reported, success={report.success}"
    )
    logger.info("=" * 60)

    return EXIT_SUCCESS if report.success else EXIT_FAILURE


def handle_request() -> Dict[str, bool]:
    """
    Request-driven entry point: run one cycle and report its status.

    Returns:
        {"success": bool}. Never raises.
    """
    logger = get_logger("main")
    dry_run = get_env_flag("DRY_RUN")

    try:
        exit_code = run_pipeline(dry_run=dry_run)
    except Exception as e:
        logger.exception(f"Unexpected error in pipeline: {e}")
        exit_code = EXIT_FAILURE

    return {"success": exit_code == EXIT_SUCCESS}


def main() -> int:
    """
    Scheduled entry point for the Job Watcher pipeline.

    Sets up logging and runs one cycle with proper error handling.

    Returns:
        Exit code for the process.
    """
    setup_logging(os.environ.get("LOG_LEVEL", "INFO"))
    logger = get_logger("main")

    dry_run = get_env_flag("DRY_RUN")
    if dry_run:
        logger.info("Running in DRY RUN mode - notifications will be skipped")

    try:
        return run_pipeline(dry_run=dry_run)

    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user")
        return EXIT_FAILURE

    except Exception as e:
        logger.exception(f"Unexpected error in pipeline: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    if "--json" in sys.argv[1:]:
        setup_logging(os.environ.get("LOG_LEVEL", "INFO"))
        print(json.dumps(handle_request()))
        sys.exit(EXIT_SUCCESS)
    sys.exit(main())
