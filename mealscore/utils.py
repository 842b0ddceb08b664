"""
Shared utilities for the Meal Score ledger.

This module provides common functions used across multiple modules
to avoid code duplication.
"""

import logging
import numbers
import re
import shutil
import tempfile
from datetime import date, datetime, timezone
from pathlib import Path

from mealscore.config import (
    DESCRIPTION_MAX_LENGTH,
    LOCATION_MAX_LENGTH,
    MAX_POINTS,
    MEMBER_NAME_MAX_LENGTH,
    MIN_POINTS,
    OUTPUT_FOLDER,
)

# ISO calendar date: YYYY-MM-DD
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# --- Logging Setup ---
def setup_logging(name: str | None = None, level: int = logging.INFO) -> logging.Logger:
    """
    Configure and return a logger with consistent formatting.

    Args:
        name: Logger name (usually __name__ from the calling module)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


# --- File Operations ---
def cleanup_old_files(pattern: str, keep_file: Path | None = None, folder: Path | None = None) -> list[Path]:
    """
    Remove old files matching pattern, optionally keeping one specific file.

    Args:
        pattern: Glob pattern to match files (e.g., "standings_2024_*.csv")
        keep_file: Path to the file that should NOT be deleted (usually the newest)
        folder: Folder to search in (default: OUTPUT_FOLDER)

    Returns:
        List of deleted file paths
    """
    logger = setup_logging(__name__)
    target_folder = folder or OUTPUT_FOLDER
    deleted = []

    for f in target_folder.glob(pattern):
        if keep_file and f.resolve() == keep_file.resolve():
            continue
        try:
            f.unlink()
            deleted.append(f)
            logger.debug(f"Deleted old file: {f}")
        except OSError as e:
            logger.warning(f"Could not delete {f}: {e}")

    return deleted


def atomic_write_csv(df, path: Path, **kwargs) -> None:
    """
    Write a DataFrame to CSV atomically using a temporary file.

    This prevents data corruption if the write is interrupted.

    Args:
        df: pandas DataFrame to write
        path: Destination path for the CSV file
        **kwargs: Additional arguments to pass to df.to_csv()
    """
    logger = setup_logging(__name__)

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with tempfile.NamedTemporaryFile(
            mode='w',
            delete=False,
            suffix='.csv',
            dir=path.parent  # Same filesystem for atomic move
        ) as tmp:
            tmp_path = Path(tmp.name)
        df.to_csv(tmp_path, **kwargs)

        shutil.move(str(tmp_path), str(path))
        logger.debug(f"Atomically wrote {len(df)} rows to {path}")

    except Exception:
        if 'tmp_path' in locals() and tmp_path.exists():
            tmp_path.unlink()
        raise


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with seconds precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


# --- Validation ---
def clamp(value: int, lower: int, upper: int) -> int:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


def validate_member_name(name: str) -> str:
    """
    Trim and validate a member display name.

    Args:
        name: Raw name as typed by the user

    Returns:
        The trimmed name

    Raises:
        ValueError: If the name is empty or longer than MEMBER_NAME_MAX_LENGTH
    """
    if not isinstance(name, str):
        raise ValueError(f"Member name must be a string, got {type(name).__name__}")
    trimmed = name.strip()
    if not trimmed:
        raise ValueError("Member name must not be empty")
    if len(trimmed) > MEMBER_NAME_MAX_LENGTH:
        raise ValueError(
            f"Member name too long: {len(trimmed)} characters. "
            f"Maximum allowed: {MEMBER_NAME_MAX_LENGTH}"
        )
    return trimmed


def validate_event_date(value) -> str:
    """
    Validate an event date and return it as an ISO YYYY-MM-DD string.

    Accepts a date object or a string already in ISO format. The string must
    also be a real calendar date (2024-02-30 is rejected).

    Raises:
        ValueError: If the value is not a well-formed calendar date
    """
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        raise ValueError(f"Invalid event date: {value!r}. Expected format: YYYY-MM-DD")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise ValueError(f"Invalid event date: {value!r}: {e}")
    return value


def validate_text(value: str | None, field: str, max_length: int, required: bool = False) -> str:
    """
    Trim and validate a free-text field.

    Raises:
        ValueError: If the field is required and empty, or exceeds max_length
    """
    trimmed = (value or "").strip()
    if required and not trimmed:
        raise ValueError(f"{field} must not be empty")
    if len(trimmed) > max_length:
        raise ValueError(
            f"{field} too long: {len(trimmed)} characters. "
            f"Maximum allowed: {max_length}"
        )
    return trimmed


def validate_location(location: str) -> str:
    return validate_text(location, "Location", LOCATION_MAX_LENGTH, required=True)


def validate_description(description: str | None) -> str:
    return validate_text(description, "Description", DESCRIPTION_MAX_LENGTH)


def validate_points(points) -> int:
    """
    Validate a stored per-attendee point value.

    Unlike manual overrides (which are clamped), a stored value outside
    [MIN_POINTS, MAX_POINTS] is rejected.

    Raises:
        ValueError: If points is not an integer in range
    """
    if isinstance(points, bool) or not isinstance(points, numbers.Integral):
        raise ValueError(f"Points must be an integer, got {points!r}")
    if not MIN_POINTS <= points <= MAX_POINTS:
        raise ValueError(
            f"Points out of range: {points}. "
            f"Allowed range: {MIN_POINTS}-{MAX_POINTS}"
        )
    return int(points)


__all__ = [
    # Logging
    'setup_logging',
    # File operations
    'cleanup_old_files',
    'atomic_write_csv',
    'utc_timestamp',
    # Validation
    'clamp',
    'validate_member_name',
    'validate_event_date',
    'validate_text',
    'validate_location',
    'validate_description',
    'validate_points',
    'ISO_DATE_RE',
]
