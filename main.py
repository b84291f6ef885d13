"""
File Compressor API Entry Point

This file serves as the main entry point for the service,
importing and running the FastAPI application defined in the file_compressor package.

Run with uvicorn:
    uvicorn main:app --reload
"""
import os
import sys
import logging

# Configure logging based on environment variables
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Configure root logger
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format=LOG_FORMAT,
    stream=sys.stdout
)

# Set up logger
logger = logging.getLogger(__name__)

# Check that required dependencies are installed
try:
    import PIL
    import pikepdf
    import fastapi
    import psutil
    import numpy
    import skimage
    logger.info("All required dependencies are available")
except ImportError as e:
    logger.critical(f"Missing required dependency: {str(e)}")
    logger.critical("Please install all dependencies: pip install -e .")
    sys.exit(1)

from file_compressor.api import app
from file_compressor.core.pdf import find_ghostscript

# Check for Ghostscript
if find_ghostscript() is None:
    logger.warning("Ghostscript is not installed. PDF compression will use the pikepdf fallback.")
else:
    logger.info("Ghostscript is available for PDF compression")

# Entry point for running with uvicorn
if __name__ == "__main__":
    import uvicorn

    # Get configuration from environment variables
    port = int(os.environ.get("PORT", 8080))
    workers = int(os.environ.get("WORKERS", 1))
    debug = os.environ.get("DEBUG", "").lower() in ("true", "1", "yes")

    logger.info(f"Starting File Compressor API on port {port} with {workers} workers")

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        workers=workers,
        reload=debug
    )
