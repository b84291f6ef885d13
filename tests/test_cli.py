"""
Tests for the command-line interface.
"""

import zipfile

import pytest

from file_compressor.cli import build_parser, main


class TestParser:
    """Tests for argument parsing."""

    def test_format_defaults_to_zip(self):
        args = build_parser().parse_args(["compress", "src", "dst"])
        assert args.command == "compress"
        assert args.format == "zip"

    def test_missing_arguments_exit(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["compress", "src"])


class TestMain:
    """Tests for main()."""

    def test_compress_and_extract(self, sample_tree, tmp_path, capsys):
        archive_path = tmp_path / "tree.zip"
        assert main(["compress", str(sample_tree), str(archive_path)]) == 0
        assert "Compression completed successfully" in capsys.readouterr().out
        assert zipfile.is_zipfile(archive_path)

        restored = tmp_path / "restored"
        assert main(["--progress", "extract", str(archive_path), str(restored)]) == 0
        assert "Extraction completed successfully" in capsys.readouterr().out
        assert (restored / "a.txt").read_bytes() == b"a" * 10

    def test_compress_with_progress(self, sample_tree, tmp_path):
        assert main(["--progress", "compress", str(sample_tree), str(tmp_path / "t.zip"), "zip"]) == 0

    def test_unsupported_format_exits_non_zero(self, sample_tree, tmp_path, capsys):
        destination = tmp_path / "tree.tar"
        assert main(["compress", str(sample_tree), str(destination), "tar"]) == 1
        assert "completed successfully" not in capsys.readouterr().out
        assert not destination.exists()

    def test_missing_source_exits_non_zero(self, tmp_path):
        assert main(["extract", str(tmp_path / "missing.zip"), str(tmp_path / "out")]) == 1
