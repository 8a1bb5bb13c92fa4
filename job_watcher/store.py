"""
Snapshot store adapters for the Job Watcher pipeline.

The pipeline only needs `get(key)` and `put(key, text)`. Two adapters are
provided: an in-memory store for tests and dry runs, and a JSON file store
that keeps every source's latest snapshot in one document.
"""

import json
import threading
from pathlib import Path
from typing import Dict, Optional

from job_watcher.utils import get_logger, safe_write_json


# Module logger
logger = get_logger("store")

# Default path for storing snapshots
DEFAULT_SNAPSHOT_PATH = "data/snapshots.json"


class StoreError(Exception):
    """Raised when a snapshot cannot be read or written."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class MemorySnapshotStore:
    """Snapshot store held in a dictionary."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, text: str) -> None:
        with self._lock:
            self._data[key] = text

    def snapshot(self) -> Dict[str, str]:
        """Return a copy of all stored snapshots."""
        with self._lock:
            return dict(self._data)


class JsonSnapshotStore:
    """
    Snapshot store persisted as a single JSON object keyed by source name.

    Every put rewrites the file atomically. A lock serializes the
    read-modify-write because all sources share the same file.
    """

    def __init__(self, filepath: str = DEFAULT_SNAPSHOT_PATH):
        self.filepath = filepath
        self._lock = threading.Lock()

    def _load(self, key: Optional[str] = None) -> Dict[str, str]:
        """Read the whole snapshot document; a missing file is an empty store."""
        if not Path(self.filepath).exists():
            return {}

        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Snapshot file {self.filepath} is not valid JSON: {e}", key=key) from e
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(f"Failed to read snapshot file {self.filepath}: {e}", key=key) from e

        if not isinstance(data, dict):
            raise StoreError(f"Snapshot file {self.filepath} does not hold a JSON object", key=key)
        return data

    def get(self, key: str) -> Optional[str]:
        """
        Get the stored snapshot for a key.

        Args:
            key: Source name.

        Returns:
            Stored text, or None if the key has never been written.

        Raises:
            StoreError: If the snapshot file cannot be read, is not a JSON
                object, or the stored value is not text.
        """
        with self._lock:
            value = self._load(key).get(key)

        if value is not None and not isinstance(value, str):
            raise StoreError(f"Snapshot for '{key}' is not text", key=key)

        return value

    def put(self, key: str, text: str) -> None:
        """
        Store the snapshot for a key, replacing any previous one.

        Raises:
            StoreError: If the snapshot file cannot be read or written.
        """
        with self._lock:
            data = self._load(key)
            data[key] = text

            if not safe_write_json(self.filepath, data):
                raise StoreError(f"Failed to write snapshot file {self.filepath}", key=key)

        logger.debug(f"Stored snapshot for '{key}' ({len(text)} chars)")
