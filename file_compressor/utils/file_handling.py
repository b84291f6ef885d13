"""
Utilities for storage paths, scratch files and delayed cleanup.
"""
import os
import re
import time
import shutil
import asyncio
import logging
import contextlib
from pathlib import Path
from typing import Iterator, Optional, Tuple

from file_compressor import COMPRESSED_DIR, UPLOAD_DIR

# Set up logging
logger = logging.getLogger(__name__)

# Characters that are not safe in stored file names
SANITIZE_PATTERN = re.compile(r"[^a-zA-Z0-9._-]+")

SCRATCH_FILE_SUFFIX = ".temp1"
SCRATCH_DIR_SUFFIX = ".tempdir"


def sanitize_filename(filename: str, fallback: str = "file") -> str:
    """
    Reduce an uploaded file name to a safe base name.

    Args:
        filename: Name supplied by the client (may include a path)
        fallback: Stem to use when nothing safe remains

    Returns:
        Base name containing only letters, digits, dots, underscores and hyphens

    Example:
        >>> sanitize_filename("../My Report.pdf")
        "My-Report.pdf"
    """
    base = os.path.basename(filename.replace("\\", "/"))
    cleaned = SANITIZE_PATTERN.sub("-", base.strip()).strip("-_")
    stem, suffix = os.path.splitext(cleaned)
    stem = stem.strip(".") or fallback
    return f"{stem}{suffix}"


def ensure_directory(path) -> Path:
    """Create a directory and its parents if missing; returns the path."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_upload_filepath(filename: str, timestamp: Optional[int] = None) -> str:
    """
    Generate a collision-resistant path for an uploaded file.

    Each upload gets its own ``<timestamp>`` directory so the file keeps its
    sanitized name (archives store the base name as the entry name).

    Args:
        filename: Sanitized upload name
        timestamp: Optional nanosecond timestamp (generated if not provided)

    Returns:
        Absolute path inside UPLOAD_DIR; the parent directory already exists
    """
    if timestamp is None:
        timestamp = time.time_ns()
    upload_dir = ensure_directory(os.path.join(os.path.abspath(UPLOAD_DIR), str(timestamp)))
    return os.path.join(str(upload_dir), filename)


def get_compressed_filepath(filename: str) -> str:
    """Absolute path of a file inside COMPRESSED_DIR."""
    return os.path.join(os.path.abspath(COMPRESSED_DIR), filename)


async def cleanup_file_later(file_path: str, delay: int = 3600) -> None:
    """
    Delete a file or directory after a delay.

    Args:
        file_path: Path to the file or directory to delete
        delay: Delay in seconds before deletion (default: 3600)
    """
    logger.debug(f"Scheduling cleanup of {file_path} in {delay} seconds")
    await asyncio.sleep(delay)
    try:
        if os.path.isdir(file_path):
            shutil.rmtree(file_path)
            logger.info(f"Removed old directory: {file_path}")
        elif os.path.exists(file_path):
            os.remove(file_path)
            logger.info(f"Removed old file: {file_path}")
    except OSError as e:
        logger.error(f"Error removing old file {file_path}: {e}")


def schedule_cleanup(file_path: str, delay: int = 3600) -> None:
    """
    Schedule a file for deletion after a delay (non-blocking).

    Must be called from a running event loop.
    """
    asyncio.create_task(cleanup_file_later(file_path, delay))


@contextlib.contextmanager
def scratch_paths(destination) -> Iterator[Tuple[Path, Path]]:
    """
    Provide a scratch file and scratch directory next to a destination.

    Names are derived from the destination path, so two concurrent jobs
    writing the same destination share them.

    Yields:
        Tuple of (scratch_file, scratch_dir); the directory already exists

    Both are removed when the context exits, whether or not an error occurred.
    """
    destination = Path(destination)
    scratch_file = destination.with_name(destination.name + SCRATCH_FILE_SUFFIX)
    scratch_dir = destination.with_name(destination.name + SCRATCH_DIR_SUFFIX)
    scratch_dir.mkdir(parents=True, exist_ok=True)
    try:
        yield scratch_file, scratch_dir
    finally:
        if scratch_file.exists():
            scratch_file.unlink()
        shutil.rmtree(scratch_dir, ignore_errors=True)
