"""
Utility functions for the Job Watcher pipeline.

This module provides:
- Central logging configuration
- Safe JSON read/write helpers
- Source configuration loading and validation
- Environment variable helpers
"""

import json
import logging
import os
import shutil
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Set, Tuple


# Default configuration paths
DEFAULT_CONFIG_PATH = "config/sources.json"

TRUTHY_VALUES = ("true", "1", "yes")


@dataclass(frozen=True)
class Source:
    """
    A named page polled by the pipeline.

    Attributes:
        name: Unique identifier, also used as the snapshot key.
        url: Address of the page to fetch.
    """
    name: str
    url: str


def load_sources_config(config_path: Optional[str] = None) -> Tuple[Source, ...]:
    """
    Load the ordered source list from environment or a JSON file.

    Priority:
    1. SOURCES_CONFIG environment variable (JSON string)
    2. SOURCES_CONFIG_PATH environment variable (file path)
    3. Provided config_path parameter
    4. Default config file path

    Args:
        config_path: Optional path to the configuration file.

    Returns:
        Tuple of Source objects in configuration order.
    """
    logger = get_logger("utils")
    data: Any = None

    env_config = os.environ.get("SOURCES_CONFIG", "").strip()
    if env_config:
        try:
            data = json.loads(env_config)
            logger.info("Loaded source config from SOURCES_CONFIG environment variable")
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in SOURCES_CONFIG: {e}")

    if data is None:
        env_path = os.environ.get("SOURCES_CONFIG_PATH", "").strip()
        file_path = env_path or config_path or DEFAULT_CONFIG_PATH

        data = safe_read_json(file_path, default={})
        if data:
            logger.info(f"Loaded source config from {file_path}")
        else:
            logger.warning(f"Could not load source config from {file_path}")

    if isinstance(data, dict):
        entries = data.get("sources", [])
    elif isinstance(data, list):
        entries = data
    else:
        entries = []

    sources = parse_sources(entries)
    logger.info(f"Loaded {len(sources)} source(s): {[s.name for s in sources]}")
    return sources


def parse_sources(entries: List[Any]) -> Tuple[Source, ...]:
    """
    Build Source objects from raw configuration entries.

    Entries missing a name or url, and duplicate names, are skipped.

    Args:
        entries: List of dictionaries with 'name' and 'url' keys.

    Returns:
        Tuple of Source objects, preserving entry order.
    """
    logger = get_logger("utils")
    sources: List[Source] = []
    seen_names: Set[str] = set()

    for entry in entries:
        source = _parse_source_entry(entry)
        if source is None:
            logger.warning(f"Skipping invalid source entry: {entry!r}")
            continue

        if source.name in seen_names:
            logger.warning(f"Skipping duplicate source name: {source.name}")
            continue

        seen_names.add(source.name)
        sources.append(source)
        logger.debug(f"Loaded source: {source}")

    return tuple(sources)


def _parse_source_entry(entry: Any) -> Optional[Source]:
    """Parse a single source entry, or return None if it is unusable."""
    if not isinstance(entry, dict):
        return None

    name = str(entry.get("name") or "").strip()
    url = str(entry.get("url") or "").strip()

    if not name or not url:
        return None

    return Source(name=name, url=url)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure and return the root logger for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO.

    Returns:
        Configured logger instance.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    logger = logging.getLogger("job_watcher")
    logger.setLevel(log_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Name for the logger, typically the module name.

    Returns:
        Logger instance configured as a child of the main application logger.
    """
    return logging.getLogger(f"job_watcher.{name}")


def safe_read_json(filepath: str, default: Optional[Any] = None) -> Any:
    """
    Safely read JSON data from a file.

    Args:
        filepath: Path to the JSON file.
        default: Value to return if the file doesn't exist or is invalid.

    Returns:
        Parsed JSON data or the default value on failure.
    """
    logger = get_logger("utils")

    try:
        path = Path(filepath)
        if not path.exists():
            logger.debug(f"File does not exist: {filepath}, returning default")
            return default

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
            logger.debug(f"Successfully read JSON from {filepath}")
            return data

    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON in {filepath}: {e}")
        return default
    except OSError as e:
        logger.error(f"Could not read {filepath}: {e}")
        return default


def safe_write_json(filepath: str, data: Any, indent: int = 2) -> bool:
    """
    Safely write JSON data to a file using atomic write operation.

    Uses a temporary file and atomic rename to prevent data corruption
    if the write operation is interrupted.

    Args:
        filepath: Path to the JSON file.
        data: Data to serialize as JSON.
        indent: JSON indentation level. Defaults to 2.

    Returns:
        True if write was successful, False otherwise.
    """
    logger = get_logger("utils")

    try:
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            suffix=".json",
            prefix="snapshots_",
            dir=path.parent
        )

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=indent, ensure_ascii=False)

            # Atomic rename (on POSIX) or copy+delete (on Windows)
            shutil.move(temp_path, filepath)
            logger.debug(f"Successfully wrote JSON to {filepath}")
            return True

        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    except PermissionError as e:
        logger.error(f"Permission denied writing {filepath}: {e}")
        return False
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Unexpected error writing {filepath}: {e}")
        return False


def get_env_var(name: str, required: bool = True, default: Optional[str] = None) -> Optional[str]:
    """
    Get an environment variable with optional requirement enforcement.

    Args:
        name: Name of the environment variable.
        required: If True, raises ValueError when variable is not set.
                  Defaults to True.
        default: Default value if variable is not set and not required.

    Returns:
        Value of the environment variable or default.

    Raises:
        ValueError: If required=True and the variable is not set.
    """
    value = os.environ.get(name)

    if value is None or value.strip() == "":
        if required:
            raise ValueError(f"Required environment variable '{name}' is not set")
        return default

    return value.strip()


def get_env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable ('true', '1', 'yes' are truthy)."""
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in TRUTHY_VALUES


def get_env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    """Read a positive integer environment variable, falling back to default."""
    value = get_env_var(name, required=False)
    if value is None:
        return default

    try:
        number = int(value)
    except ValueError:
        get_logger("utils").warning(f"Ignoring non-integer {name}={value!r}")
        return default

    return number if number > 0 else default
