"""
API module for the file compressor.
"""
import os
import time
import zlib
import logging
import platform
import subprocess

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from file_compressor import COMPRESSED_DIR, UPLOAD_DIR, __version__
from file_compressor.api.compress import router as compress_router
from file_compressor.core.pdf import find_ghostscript
from file_compressor.utils.file_handling import ensure_directory

# Set up logging
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="File Compressor API",
    description="""
    API for compressing uploaded files:
    - ZIP archives with maximum DEFLATE compression
    - PNG/JPEG re-encoding with tiered downsampling
    - PDF optimization (Ghostscript with a pikepdf fallback)

    Compressed files are available for download for a limited time.
    """,
    version=__version__
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(compress_router)

# Storage directories must exist before the first upload
ensure_directory(UPLOAD_DIR)
ensure_directory(COMPRESSED_DIR)
logger.info(f"Upload directory: {os.path.abspath(UPLOAD_DIR)}")
logger.info(f"Compressed directory: {os.path.abspath(COMPRESSED_DIR)}")


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unexpected errors."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "An unexpected error occurred", "error": str(exc)}
    )


# Health check endpoints
@app.get("/health")
async def health_check():
    """Check if the API is running."""
    return {"status": "healthy", "version": __version__}


def _directory_status(path: str) -> dict:
    status = {"path": os.path.abspath(path), "exists": os.path.isdir(path)}
    if status["exists"]:
        test_file = os.path.join(path, "test_write_permissions.txt")
        try:
            with open(test_file, "w") as f:
                f.write("test")
            os.remove(test_file)
            status["writable"] = True
        except OSError as e:
            status["writable"] = False
            status["write_error"] = str(e)
    return status


@app.get("/health/detailed")
async def detailed_health_check():
    """
    Provides detailed health information including system metrics and component status.
    """
    import psutil
    import PIL
    import pikepdf

    # System info
    system_info = {
        "cpu_usage": psutil.cpu_percent(interval=0.1),
        "memory_usage": psutil.virtual_memory().percent,
        "disk_usage": psutil.disk_usage(os.path.abspath(COMPRESSED_DIR)).percent,
        "python_version": platform.python_version(),
        "platform": platform.platform()
    }

    # Check compression libraries
    compression_status = {
        "pillow": {"status": "ok", "version": PIL.__version__},
        "pikepdf": {
            "status": "ok",
            "version": pikepdf.__version__,
            "qpdf_version": pikepdf.__libqpdf_version__
        },
    }

    # Check DEFLATE at the level used for archives
    test_data = b"test data for compression" * 8
    compressor = zlib.compressobj(zlib.Z_BEST_COMPRESSION, zlib.DEFLATED, -zlib.MAX_WBITS)
    compressed = compressor.compress(test_data) + compressor.flush()
    decompressed = zlib.decompress(compressed, -zlib.MAX_WBITS)
    compression_status["deflate"] = {
        "status": "ok" if decompressed == test_data else "error",
        "compression_ratio": round(len(test_data) / len(compressed), 2)
    }

    # Check Ghostscript
    gs = find_ghostscript()
    if gs is None:
        compression_status["ghostscript"] = {
            "status": "missing",
            "message": "PDF optimization will use the pikepdf fallback"
        }
    else:
        try:
            result = subprocess.run([gs, "--version"], capture_output=True, text=True, check=True)
            compression_status["ghostscript"] = {"status": "ok", "version": result.stdout.strip()}
        except (OSError, subprocess.SubprocessError) as e:
            compression_status["ghostscript"] = {"status": "error", "message": str(e)}

    return {
        "status": "healthy",
        "version": __version__,
        "system": system_info,
        "compression": compression_status,
        "storage": {
            "uploads": _directory_status(UPLOAD_DIR),
            "compressed": _directory_status(COMPRESSED_DIR)
        },
        "timestamp": time.time()
    }
