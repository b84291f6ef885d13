"""
Tests for ZIP archive writing and extraction.

Tests cover:
- Directory and single-file archives
- Maximum DEFLATE settings on every entry
- Path traversal rejection
- Permission restore
- Progress reporting
"""

import os
import stat
import zipfile

import pytest

from file_compressor.core import archive
from file_compressor.core.archive import (
    MAX_COMPRESSION_LEVEL,
    apply_max_compression,
    calculate_total_size,
    extract_zip,
    iter_archive_entries,
    resolve_extraction_target,
    write_zip
)
from file_compressor.core.errors import CompressionIOError, IllegalPathError, PathError
from file_compressor.core.progress import ProgressTracker


def read_tree(root):
    files = {}
    for dirpath, _, filenames in os.walk(root):
        for name in filenames:
            path = os.path.join(dirpath, name)
            files[os.path.relpath(path, root).replace(os.sep, "/")] = open(path, "rb").read()
    return files


class TestWriteZip:
    """Tests for write_zip."""

    def test_directory_round_trip(self, sample_tree, tmp_path):
        """Extracting a directory archive should reproduce the tree."""
        destination = tmp_path / "out" / "tree.zip"
        count = write_zip(sample_tree, destination)
        assert count == 3

        extract_zip(destination, tmp_path / "restored")
        assert read_tree(tmp_path / "restored") == read_tree(sample_tree)

    def test_entry_names_are_relative_posix_paths(self, sample_tree, tmp_path):
        """Entries should be named relative to the source root."""
        destination = tmp_path / "tree.zip"
        write_zip(sample_tree, destination)
        with zipfile.ZipFile(destination) as zf:
            names = sorted(zf.namelist())
        assert names == ["a.txt", "nested/b.txt", "nested/deeper/c.txt"]

    def test_entries_use_deflate(self, sample_tree, tmp_path):
        """Every entry should be stored with DEFLATE."""
        destination = tmp_path / "tree.zip"
        write_zip(sample_tree, destination)
        with zipfile.ZipFile(destination) as zf:
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())
            assert zf.testzip() is None

    def test_single_file_uses_base_name(self, tmp_path):
        """A single-file archive should hold one entry named after the file."""
        source = tmp_path / "notes.txt"
        source.write_bytes(b"x" * 100)
        destination = tmp_path / "notes.zip"
        write_zip(source, destination)
        with zipfile.ZipFile(destination) as zf:
            assert zf.namelist() == ["notes.txt"]
            assert zf.read("notes.txt") == b"x" * 100

    def test_archive_inside_source_skips_itself(self, sample_tree):
        """Writing the archive into its own source tree should not archive it."""
        destination = sample_tree / "self.zip"
        count = write_zip(sample_tree, destination)
        assert count == 3
        with zipfile.ZipFile(destination) as zf:
            assert "self.zip" not in zf.namelist()

    def test_missing_source_raises_path_error(self, tmp_path):
        """A missing source should fail before the archive is created."""
        destination = tmp_path / "missing.zip"
        with pytest.raises(PathError):
            write_zip(tmp_path / "nope", destination)
        assert not destination.exists()

    def test_partial_archive_removed_on_failure(self, sample_tree, tmp_path, monkeypatch):
        """A failed write should not leave a truncated archive behind."""
        calls = {"count": 0}
        original_add_entry = archive._add_entry

        def failing_add_entry(zip_file, entry):
            calls["count"] += 1
            if calls["count"] == 2:
                raise CompressionIOError(entry.path, "read file")
            return original_add_entry(zip_file, entry)

        monkeypatch.setattr(archive, "_add_entry", failing_add_entry)
        destination = tmp_path / "broken.zip"
        with pytest.raises(CompressionIOError):
            write_zip(sample_tree, destination)
        assert not destination.exists()

    def test_progress_is_monotonic_and_completes(self, sample_tree, tmp_path):
        """Archive progress should only move forward and end at the total."""
        calls = []
        tracker = ProgressTracker(lambda done, total: calls.append((done, total)))
        tracker.set_total_size(calculate_total_size(sample_tree))
        write_zip(sample_tree, tmp_path / "tree.zip", tracker)
        tracker.set_complete()

        values = [done for done, _ in calls]
        assert values == sorted(values)
        assert calls[0] == (0, 60)
        assert calls[-1] == (60, 60)
        assert all(done <= total for done, total in calls)


class TestMaxCompression:
    """Tests for apply_max_compression."""

    def test_level_is_set_on_entry_header(self):
        """ZipFile.open(zinfo, "w") takes the level from the header, so it must be set there."""
        zinfo = apply_max_compression(zipfile.ZipInfo("entry.txt"))
        assert zinfo.compress_type == zipfile.ZIP_DEFLATED
        level = getattr(zinfo, "compress_level", None)
        if level is None:
            level = zinfo._compresslevel
        assert level == MAX_COMPRESSION_LEVEL == 9


class TestArchiveEntries:
    """Tests for source enumeration."""

    def test_total_size_sums_regular_files(self, sample_tree):
        assert calculate_total_size(sample_tree) == 60

    def test_symlinks_are_skipped(self, sample_tree):
        """Only regular files should be archived."""
        link = sample_tree / "link.txt"
        try:
            link.symlink_to(sample_tree / "a.txt")
        except OSError:
            pytest.skip("symlinks not supported")
        names = [entry.arcname for entry in iter_archive_entries(sample_tree)]
        assert "link.txt" not in names
        assert len(names) == 3


class TestExtractZip:
    """Tests for extract_zip."""

    def test_traversal_entry_is_rejected(self, tmp_path):
        """An entry escaping the destination should raise and write nothing."""
        source = tmp_path / "evil.zip"
        with zipfile.ZipFile(source, "w") as zf:
            zf.writestr("../../etc/passwd", "owned")
        destination = tmp_path / "out"

        with pytest.raises(IllegalPathError) as exc_info:
            extract_zip(source, destination)

        assert "../../etc/passwd" in str(exc_info.value)
        assert not (destination / "../../etc/passwd").resolve().exists()
        assert list(destination.iterdir()) == []

    def test_absolute_entry_is_rejected(self, tmp_path):
        """Absolute entry names should be rejected."""
        with pytest.raises(IllegalPathError):
            resolve_extraction_target(tmp_path / "out", "/etc/evil")

    def test_sibling_prefix_is_rejected(self, tmp_path):
        """A sibling directory sharing the root's prefix should not count as inside."""
        with pytest.raises(IllegalPathError):
            resolve_extraction_target(tmp_path / "out", "../out-evil/file.txt")

    def test_nested_entry_is_allowed(self, tmp_path):
        target = resolve_extraction_target(tmp_path / "out", "a/b/c.txt")
        assert target == (tmp_path / "out" / "a" / "b" / "c.txt").resolve()

    def test_file_mode_is_restored(self, tmp_path):
        """Permission bits stored in the archive should be applied."""
        source = tmp_path / "script.sh"
        source.write_bytes(b"#!/bin/sh\n")
        os.chmod(source, 0o750)
        archive_path = tmp_path / "script.zip"
        write_zip(source, archive_path)

        extract_zip(archive_path, tmp_path / "out")
        mode = stat.S_IMODE(os.stat(tmp_path / "out" / "script.sh").st_mode)
        assert mode == 0o750

    def test_directory_entries_are_created(self, tmp_path):
        source = tmp_path / "dirs.zip"
        with zipfile.ZipFile(source, "w") as zf:
            zf.writestr("empty/", "")
            zf.writestr("empty/inner/file.txt", "data")
        extract_zip(source, tmp_path / "out")
        assert (tmp_path / "out" / "empty").is_dir()
        assert (tmp_path / "out" / "empty" / "inner" / "file.txt").read_text() == "data"

    def test_extraction_progress_counts_uncompressed_bytes(self, sample_tree, tmp_path):
        """Extraction progress should total the uncompressed entry sizes."""
        archive_path = tmp_path / "tree.zip"
        write_zip(sample_tree, archive_path)

        calls = []
        tracker = ProgressTracker(lambda done, total: calls.append((done, total)))
        extract_zip(archive_path, tmp_path / "out", tracker)
        assert calls[0] == (0, 60)
        assert calls[-1] == (60, 60)

    def test_corrupt_archive_raises_io_error(self, tmp_path):
        source = tmp_path / "corrupt.zip"
        source.write_bytes(b"this is not a zip file")
        with pytest.raises(CompressionIOError):
            extract_zip(source, tmp_path / "out")
