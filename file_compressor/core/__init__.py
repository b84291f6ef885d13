"""
Core compression engine.

This package contains the format handlers and the dispatcher in front of them:
- archive: ZIP writing and safe extraction
- raster: PNG/JPEG re-encoding
- pdf: tiered PDF optimization
- progress: byte-count progress tracking
- dispatcher: compress/extract entry points
"""
from file_compressor.core.dispatcher import (
    SUPPORTED_FORMATS,
    compress,
    compress_with_progress,
    detect_archive_format,
    extract,
    extract_with_progress,
    validate_job
)

from file_compressor.core.errors import (
    CompressionIOError,
    CompressorError,
    FormatMismatchError,
    IllegalPathError,
    OptimizationError,
    PathError,
    UnsupportedFormatError
)

from file_compressor.core.progress import (
    ProgressTracker,
    ProgressWriter,
    logging_progress_observer
)

__all__ = [
    # Entry points
    'SUPPORTED_FORMATS',
    'compress',
    'compress_with_progress',
    'detect_archive_format',
    'extract',
    'extract_with_progress',
    'validate_job',

    # Errors
    'CompressorError',
    'CompressionIOError',
    'FormatMismatchError',
    'IllegalPathError',
    'OptimizationError',
    'PathError',
    'UnsupportedFormatError',

    # Progress
    'ProgressTracker',
    'ProgressWriter',
    'logging_progress_observer'
]
