"""
ZIP archive writer and reader.

Archives are written entry by entry with DEFLATE forced to the best
compression level. Extraction validates every entry against the destination
root before a single byte of it is written.

Entry names are POSIX-style paths relative to the job's source root, so an
archive is portable across extraction locations.
"""
import os
import shutil
import stat
import logging
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from file_compressor.core.errors import CompressionIOError, IllegalPathError, PathError
from file_compressor.core.progress import ProgressTracker, ProgressWriter

# Set up logging
logger = logging.getLogger(__name__)

# Constants
MAX_COMPRESSION_LEVEL = zlib.Z_BEST_COMPRESSION
WRITE_BUFFER_SIZE = 4 * 1024 * 1024
READ_BUFFER_SIZE = 32 * 1024


@dataclass(frozen=True)
class ArchiveEntry:
    """A regular file scheduled for archiving"""
    arcname: str
    path: Path

    def to_zipinfo(self) -> zipfile.ZipInfo:
        """Build an entry header carrying the file's mode and timestamp."""
        zinfo = zipfile.ZipInfo.from_file(self.path, self.arcname, strict_timestamps=False)
        return apply_max_compression(zinfo)


def apply_max_compression(zinfo: zipfile.ZipInfo) -> zipfile.ZipInfo:
    """
    Force DEFLATE at the best compression level for a single entry.

    zipfile takes the level from the entry header when one is passed to
    ``ZipFile.open``, ignoring the archive-wide default.
    """
    zinfo.compress_type = zipfile.ZIP_DEFLATED
    if hasattr(zinfo, "compress_level"):
        zinfo.compress_level = MAX_COMPRESSION_LEVEL
    else:
        # Before 3.13, ZipFile.open(zinfo, "w") reads the level from this attribute only
        zinfo._compresslevel = MAX_COMPRESSION_LEVEL
    return zinfo


def _is_regular_file(path: Path) -> bool:
    try:
        mode = path.lstat().st_mode
    except OSError as e:
        raise CompressionIOError(path, "stat file", e) from e
    return stat.S_ISREG(mode)


def iter_archive_entries(source) -> Iterator[ArchiveEntry]:
    """
    Enumerate the regular files under a source path.

    Args:
        source: A single file or a directory tree

    Yields:
        ArchiveEntry for each regular file, in a stable order. A single file
        is stored under its base name; files in a tree are stored relative
        to the tree root.
    """
    source = Path(source)
    if not source.exists():
        raise PathError(source)

    if not source.is_dir():
        yield ArchiveEntry(source.name, source)
        return

    def on_error(error: OSError):
        raise CompressionIOError(error.filename or source, "walk directory", error) from error

    for root, dirs, files in os.walk(source, onerror=on_error):
        dirs.sort()
        root_path = Path(root)
        for name in sorted(files):
            path = root_path / name
            if not _is_regular_file(path):
                logger.debug(f"Skipping non-regular file: {path}")
                continue
            arcname = path.relative_to(source).as_posix()
            yield ArchiveEntry(arcname, path)


def calculate_total_size(source) -> int:
    """
    Sum the sizes of the regular files a compression job will read.

    Args:
        source: A single file or a directory tree

    Returns:
        Total size in bytes
    """
    total = 0
    for entry in iter_archive_entries(source):
        try:
            total += entry.path.stat().st_size
        except OSError as e:
            raise CompressionIOError(entry.path, "stat file", e) from e
    return total


def _add_entry(zip_file: zipfile.ZipFile, entry: ArchiveEntry) -> int:
    try:
        zinfo = entry.to_zipinfo()
        with open(entry.path, "rb") as src, zip_file.open(zinfo, "w") as dst:
            shutil.copyfileobj(src, dst, WRITE_BUFFER_SIZE)
    except OSError as e:
        raise CompressionIOError(entry.path, f"write file to zip as {entry.arcname}", e) from e
    logger.debug(f"Added {entry.path} as {entry.arcname} ({zinfo.file_size} bytes)")
    return zinfo.file_size


def write_zip(source, destination, tracker: Optional[ProgressTracker] = None) -> int:
    """
    Compress a file or directory tree into a ZIP archive.

    Args:
        source: File or directory to archive
        destination: Path of the archive to create
        tracker: Optional progress tracker fed with bytes written to the archive

    Returns:
        Number of entries written

    Raises:
        PathError: If the source does not exist
        CompressionIOError: If reading a file or writing the archive fails
    """
    source = Path(source)
    destination = Path(destination)
    if not source.exists():
        raise PathError(source)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        dest_file = open(destination, "wb")
    except OSError as e:
        raise CompressionIOError(destination, "create ZIP file", e) from e

    count = 0
    try:
        with dest_file:
            sink = ProgressWriter(dest_file, tracker) if tracker is not None else dest_file
            with zipfile.ZipFile(sink, "w", compression=zipfile.ZIP_DEFLATED,
                                 compresslevel=MAX_COMPRESSION_LEVEL) as zip_file:
                for entry in iter_archive_entries(source):
                    if entry.path.resolve() == destination.resolve():
                        continue
                    _add_entry(zip_file, entry)
                    count += 1
    except Exception:
        logger.error(f"ZIP compression of {source} failed, removing partial archive {destination}")
        destination.unlink(missing_ok=True)
        raise

    logger.info(f"Wrote {count} entries from {source} to {destination}")
    return count


def resolve_extraction_target(destination: Path, entry_name: str) -> Path:
    """
    Compute where an entry lands and check it stays under the destination.

    Both paths are resolved first, so ``..`` segments, absolute entry names
    and symlinked directories cannot smuggle a write outside the root.

    Args:
        destination: Extraction root
        entry_name: Entry name as stored in the archive

    Returns:
        Absolute target path

    Raises:
        IllegalPathError: If the target is not a strict descendant of the root
    """
    root = destination.resolve()
    target = (root / entry_name).resolve()
    if root not in target.parents:
        raise IllegalPathError(entry_name, root)
    return target


def _extract_entry(zip_file: zipfile.ZipFile, info: zipfile.ZipInfo, destination: Path,
                   tracker: Optional[ProgressTracker]) -> None:
    target = resolve_extraction_target(destination, info.filename)

    if info.is_dir():
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CompressionIOError(target, "create directory", e) from e
        return

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CompressionIOError(target.parent, "create directory structure", e) from e

    try:
        with zip_file.open(info) as src, open(target, "wb") as dst:
            while True:
                chunk = src.read(READ_BUFFER_SIZE)
                if not chunk:
                    break
                written = dst.write(chunk)
                if tracker is not None:
                    tracker.add_progress(written)
    except (OSError, zipfile.BadZipFile) as e:
        raise CompressionIOError(target, f"extract {info.filename}", e) from e

    mode = (info.external_attr >> 16) & 0o777
    if mode:
        try:
            os.chmod(target, mode)
        except OSError as e:
            raise CompressionIOError(target, "set file permissions", e) from e


def extract_zip(source, destination, tracker: Optional[ProgressTracker] = None) -> int:
    """
    Extract a ZIP archive under a destination directory.

    Args:
        source: Archive to read
        destination: Directory to extract into (created if missing)
        tracker: Optional progress tracker; its total is set to the sum of
            uncompressed entry sizes and it advances per decompressed chunk

    Returns:
        Number of entries processed

    Raises:
        IllegalPathError: If any entry escapes the destination; nothing
            further is extracted
        CompressionIOError: If the archive cannot be read or a file written
    """
    source = Path(source)
    destination = Path(destination)

    try:
        zip_file = zipfile.ZipFile(source)
    except (OSError, zipfile.BadZipFile) as e:
        raise CompressionIOError(source, "open zip file", e) from e

    with zip_file:
        infos = zip_file.infolist()
        if tracker is not None:
            tracker.set_total_size(sum(info.file_size for info in infos))

        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CompressionIOError(destination, "create destination directory", e) from e

        for info in infos:
            _extract_entry(zip_file, info, destination, tracker)

    logger.info(f"Extracted {len(infos)} entries from {source} to {destination}")
    return len(infos)
