"""
Pytest configuration and fixtures for File Compressor tests.
"""

import os
import shutil
import tempfile
from pathlib import Path

import pikepdf
import pytest
from PIL import Image
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="fc_test_uploads_")
os.environ["COMPRESSED_DIR"] = tempfile.mkdtemp(prefix="fc_test_compressed_")

from file_compressor.api import app


@pytest.fixture(scope="session")
def storage_dirs():
    """Expose and cleanup the service storage directories."""
    upload_dir = os.environ["UPLOAD_DIR"]
    compressed_dir = os.environ["COMPRESSED_DIR"]

    yield {
        "uploads": upload_dir,
        "compressed": compressed_dir,
    }

    # Cleanup after all tests
    shutil.rmtree(upload_dir, ignore_errors=True)
    shutil.rmtree(compressed_dir, ignore_errors=True)


@pytest.fixture
def client(storage_dirs):
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def sample_tree(tmp_path):
    """A small directory tree with nested files of 10, 20 and 30 bytes."""
    root = tmp_path / "tree"
    (root / "nested" / "deeper").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"a" * 10)
    (root / "nested" / "b.txt").write_bytes(b"b" * 20)
    (root / "nested" / "deeper" / "c.txt").write_bytes(b"c" * 30)
    return root


def make_image(path: Path, size, fmt: str, mode: str = "RGB") -> Path:
    """Write a gradient image so encoders have real content to work with."""
    width, height = size
    image = Image.linear_gradient("L").resize((width, height))
    if mode != "L":
        image = Image.merge("RGB", (image, image.transpose(Image.Transpose.FLIP_LEFT_RIGHT), image))
        if mode != "RGB":
            image = image.convert(mode)
    image.save(path, format=fmt)
    return path


@pytest.fixture
def png_factory(tmp_path):
    def factory(width, height, name="image.png", mode="RGB"):
        return make_image(tmp_path / name, (width, height), "PNG", mode)
    return factory


@pytest.fixture
def jpeg_factory(tmp_path):
    def factory(width, height, name="image.jpg"):
        return make_image(tmp_path / name, (width, height), "JPEG")
    return factory


@pytest.fixture
def sample_pdf(tmp_path):
    """An uncompressed single-page PDF with a repetitive content stream."""
    path = tmp_path / "document.pdf"
    pdf = pikepdf.new()
    pdf.add_blank_page(page_size=(612, 792))
    pdf.pages[0].obj.Contents = pdf.make_stream(b"0 0 m 300 300 l S\n" * 500)
    pdf.save(path, compress_streams=False, object_stream_mode=pikepdf.ObjectStreamMode.disable)
    pdf.close()
    return path


@pytest.fixture
def image_pdf(tmp_path):
    """A PDF that embeds a single JPEG image."""
    path = tmp_path / "scan.pdf"
    image = Image.linear_gradient("L").resize((600, 400)).convert("RGB")
    image.save(path, format="PDF", resolution=72.0)
    return path
