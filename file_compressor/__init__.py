"""
File Compressor

This package compresses files and directory trees into a small set of
representations and reports progress while doing so:
- ZIP archives (maximum DEFLATE compression), with safe extraction
- PNG/JPEG re-encoding with tiered downsampling
- PDF optimization (Ghostscript, with a pikepdf fallback)

The engine lives in ``file_compressor.core``; ``file_compressor.api`` exposes
it as an upload/download HTTP service and ``file_compressor.cli`` as a
command-line tool.
"""
import os
import tempfile

__version__ = "1.0.0"

# Storage locations and limits for the HTTP service
_DEFAULT_ROOT = os.path.join(tempfile.gettempdir(), "file_compressor")
UPLOAD_DIR = os.environ.get("UPLOAD_DIR", os.path.join(_DEFAULT_ROOT, "uploads"))
COMPRESSED_DIR = os.environ.get("COMPRESSED_DIR", os.path.join(_DEFAULT_ROOT, "compressed"))
MAX_UPLOAD_SIZE = int(os.environ.get("MAX_UPLOAD_SIZE", 100 * 1024 * 1024))
RETENTION_SECONDS = int(os.environ.get("RETENTION_SECONDS", 3600))

__all__ = [
    '__version__',
    'UPLOAD_DIR',
    'COMPRESSED_DIR',
    'MAX_UPLOAD_SIZE',
    'RETENTION_SECONDS'
]
