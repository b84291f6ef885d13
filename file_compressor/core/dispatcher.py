"""
Entry points of the compression engine.

``compress`` and ``extract`` validate the request, pick the format handler
and delegate to it. The ``*_with_progress`` variants also drive a
ProgressTracker: the total is computed before any bytes move and the
tracker is completed exactly once when the job succeeds.
"""
import os
import logging
from pathlib import Path
from typing import Callable, Dict, Optional

from file_compressor.core.archive import calculate_total_size, extract_zip, write_zip
from file_compressor.core.errors import (
    CompressionIOError,
    FormatMismatchError,
    PathError,
    UnsupportedFormatError
)
from file_compressor.core.pdf import optimize_pdf
from file_compressor.core.progress import ProgressTracker
from file_compressor.core.raster import JPEG_EXTENSIONS, PNG_EXTENSIONS, compress_jpeg, compress_png
from file_compressor.models.job import CompressionJob

# Set up logging
logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("pdf", "zip", "png", "jpg", "jpeg")

# Single-file formats and the source extensions they accept
SINGLE_FILE_EXTENSIONS: Dict[str, tuple] = {
    "pdf": (".pdf",),
    "png": PNG_EXTENSIONS,
    "jpg": JPEG_EXTENSIONS,
    "jpeg": JPEG_EXTENSIONS,
}

ARCHIVE_EXTENSIONS = {
    ".zip": "zip",
}


def normalize_format(format_name: str) -> str:
    """
    Lower-case a format name and check it is implemented.

    Raises:
        UnsupportedFormatError: If the name is not one of SUPPORTED_FORMATS
    """
    normalized = (format_name or "").strip().lower().lstrip(".")
    if normalized not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(format_name)
    return normalized


def validate_job(source, destination, format_name: str) -> CompressionJob:
    """
    Validate a compression request.

    Args:
        source: File or directory to compress
        destination: Output path
        format_name: Requested format (case-insensitive)

    Returns:
        The validated, immutable CompressionJob

    Raises:
        PathError: If the source does not exist
        UnsupportedFormatError: If the format is unknown or unimplemented
        FormatMismatchError: If an image/PDF format is requested for a source
            that is not a file with the matching extension
    """
    source = Path(source)
    try:
        is_directory = source.is_dir()
        exists = source.exists()
    except OSError as e:
        raise PathError(source, f"cannot stat source ({e})") from e
    if not exists:
        raise PathError(source)

    format_name = normalize_format(format_name)

    extensions = SINGLE_FILE_EXTENSIONS.get(format_name)
    if extensions is not None:
        if is_directory:
            raise FormatMismatchError(
                source, format_name,
                f"{format_name.upper()} compression requires a single file, not a directory"
            )
        if source.suffix.lower() not in extensions:
            raise FormatMismatchError(source, format_name)

    return CompressionJob(
        source=source,
        destination=Path(destination),
        format=format_name,
        is_directory=is_directory,
    )


def _compress_zip(job: CompressionJob, tracker: Optional[ProgressTracker]) -> None:
    write_zip(job.source, job.destination, tracker)


def _compress_png(job: CompressionJob, tracker: Optional[ProgressTracker]) -> None:
    compress_png(job.source, job.destination)


def _compress_jpeg(job: CompressionJob, tracker: Optional[ProgressTracker]) -> None:
    compress_jpeg(job.source, job.destination)


def _compress_pdf(job: CompressionJob, tracker: Optional[ProgressTracker]) -> None:
    optimize_pdf(job.source, job.destination)


_COMPRESSORS: Dict[str, Callable[[CompressionJob, Optional[ProgressTracker]], None]] = {
    "zip": _compress_zip,
    "png": _compress_png,
    "jpg": _compress_jpeg,
    "jpeg": _compress_jpeg,
    "pdf": _compress_pdf,
}


def _run_compression(source, destination, format_name: str,
                     tracker: Optional[ProgressTracker]) -> CompressionJob:
    job = validate_job(source, destination, format_name)

    if tracker is not None:
        tracker.set_total_size(calculate_total_size(job.source))

    if job.format != "zip":
        try:
            job.destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CompressionIOError(job.destination.parent, "create destination directory", e) from e

    logger.info(f"Compressing {job.source} to {job.destination} with format {job.format}")
    _COMPRESSORS[job.format](job, tracker)

    if tracker is not None:
        tracker.set_complete()
    return job


def compress(source, destination, format_name: str = "zip") -> CompressionJob:
    """
    Compress a file or directory.

    Args:
        source: File or directory to compress
        destination: Output path
        format_name: One of SUPPORTED_FORMATS (case-insensitive)

    Returns:
        The CompressionJob that was executed

    Raises:
        CompressorError: Any engine error; see file_compressor.core.errors
    """
    return _run_compression(source, destination, format_name, None)


def compress_with_progress(source, destination, format_name: str,
                           tracker: ProgressTracker) -> CompressionJob:
    """
    Compress a file or directory, reporting progress to a tracker.

    The tracker's total is the size of the source (a full walk for
    directories) and is set before any data is written.
    """
    return _run_compression(source, destination, format_name, tracker)


def detect_archive_format(source) -> str:
    """
    Infer the archive format from a file's extension.

    Raises:
        UnsupportedFormatError: If the extension is not a supported archive
    """
    extension = os.path.splitext(str(source))[1].lower()
    format_name = ARCHIVE_EXTENSIONS.get(extension)
    if format_name is None:
        raise UnsupportedFormatError(extension or str(source), kind="archive")
    return format_name


def _run_extraction(source, destination, tracker: Optional[ProgressTracker]) -> int:
    source = Path(source)
    if not source.exists():
        raise PathError(source)
    if not source.is_file():
        raise PathError(source, "archive is not a regular file")

    format_name = detect_archive_format(source)
    logger.info(f"Extracting {source} to {destination} ({format_name})")
    count = extract_zip(source, destination, tracker)

    if tracker is not None:
        tracker.set_complete()
    return count


def extract(source, destination) -> int:
    """
    Extract an archive into a directory.

    Args:
        source: Archive path; the format is taken from its extension
        destination: Directory to extract into (created if missing)

    Returns:
        Number of archive entries processed

    Raises:
        PathError: If the archive does not exist
        UnsupportedFormatError: If the extension is not a supported archive
        IllegalPathError: If an entry would be written outside destination
        CompressionIOError: If reading or writing fails
    """
    return _run_extraction(source, destination, None)


def extract_with_progress(source, destination, tracker: ProgressTracker) -> int:
    """Extract an archive, reporting decompressed bytes written to a tracker."""
    return _run_extraction(source, destination, tracker)
