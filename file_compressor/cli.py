"""
Command-line interface for the file compressor.

Usage:
    file-compressor compress <source> <destination> [format]
    file-compressor extract <source> <destination>

The format defaults to zip.
"""
import os
import sys
import logging
import argparse
from typing import List, Optional

from file_compressor import __version__
from file_compressor.core import (
    SUPPORTED_FORMATS,
    CompressorError,
    ProgressTracker,
    compress,
    compress_with_progress,
    extract,
    extract_with_progress,
    logging_progress_observer
)

# Set up logging
logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="file-compressor",
        description="Compress files and directories, or extract archives."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Log progress while bytes are processed"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    compress_parser = subparsers.add_parser("compress", help="Compress a file or directory")
    compress_parser.add_argument("source", help="File or directory to compress")
    compress_parser.add_argument("destination", help="Output file")
    compress_parser.add_argument(
        "format",
        nargs="?",
        default="zip",
        help=f"Output format: {', '.join(SUPPORTED_FORMATS)} (default: zip)"
    )

    extract_parser = subparsers.add_parser("extract", help="Extract an archive")
    extract_parser.add_argument("source", help="Archive to extract")
    extract_parser.add_argument("destination", help="Directory to extract into")

    return parser


def run(args: argparse.Namespace) -> None:
    """Execute a parsed command; engine errors propagate to the caller."""
    if args.command == "compress":
        if args.progress:
            tracker = ProgressTracker(logging_progress_observer("Compression"))
            compress_with_progress(args.source, args.destination, args.format, tracker)
        else:
            compress(args.source, args.destination, args.format)
        print("Compression completed successfully")
    else:
        if args.progress:
            tracker = ProgressTracker(logging_progress_observer("Extraction"))
            extract_with_progress(args.source, args.destination, tracker)
        else:
            extract(args.source, args.destination)
        print("Extraction completed successfully")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr
    )

    try:
        run(args)
    except CompressorError as e:
        logger.error(f"{args.command.capitalize()} failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
