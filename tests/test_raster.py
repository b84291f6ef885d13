"""
Tests for PNG/JPEG re-encoding.
"""

import numpy as np
import pytest
from PIL import Image

from file_compressor.core.errors import CompressionIOError, FormatMismatchError
from file_compressor.core.raster import compress_jpeg, compress_png, downscale, recompress_image
from file_compressor.models.options import CompressionPolicy


class TestCompressionPolicy:
    """Tests for the tiered downsampling rule."""

    @pytest.mark.parametrize("size, expected", [
        ((2000, 1500), (1400, 1050)),
        ((800, 600), (640, 480)),
        ((1000, 1000), (800, 800)),
        ((1001, 10), (700, 7)),
        ((500, 500), (500, 500)),
        ((300, 200), (300, 200)),
    ])
    def test_target_dimensions(self, size, expected):
        assert CompressionPolicy().target_dimensions(*size) == expected

    def test_integer_truncation(self):
        """Scaled sides should be truncated, not rounded."""
        assert CompressionPolicy().target_dimensions(1003, 999) == (702, 699)

    def test_policy_is_frozen(self):
        policy = CompressionPolicy()
        with pytest.raises(Exception):
            policy.jpeg_quality = 50


class TestDownscale:
    """Tests for downscale."""

    def test_small_image_is_returned_unchanged(self):
        image = Image.new("RGB", (100, 80))
        assert downscale(image) is image

    def test_palette_image_is_resampled_in_rgb(self):
        image = Image.new("P", (800, 600))
        resized = downscale(image)
        assert resized.size == (640, 480)
        assert resized.mode == "RGB"


class TestCompressPng:
    """Tests for compress_png."""

    def test_large_png_is_scaled_to_70_percent(self, png_factory, tmp_path):
        source = png_factory(2000, 1500)
        destination = tmp_path / "out.png"
        compress_png(source, destination)
        with Image.open(destination) as result:
            assert result.format == "PNG"
            assert result.size == (1400, 1050)

    def test_medium_png_is_scaled_to_80_percent(self, png_factory, tmp_path):
        source = png_factory(800, 600)
        destination = tmp_path / "out.png"
        compress_png(source, destination)
        with Image.open(destination) as result:
            assert result.size == (640, 480)

    def test_small_png_keeps_dimensions(self, png_factory, tmp_path):
        source = png_factory(320, 240)
        destination = tmp_path / "out.png"
        compress_png(source, destination)
        with Image.open(destination) as result:
            assert result.size == (320, 240)

    def test_transparency_is_kept(self, png_factory, tmp_path):
        source = png_factory(600, 600, name="alpha.png", mode="RGBA")
        destination = tmp_path / "out.png"
        compress_png(source, destination)
        with Image.open(destination) as result:
            assert result.mode == "RGBA"

    def test_in_place_re_encoding(self, png_factory):
        source = png_factory(700, 700)
        compress_png(source, source)
        with Image.open(source) as result:
            assert result.size == (560, 560)

    def test_non_png_data_is_rejected(self, jpeg_factory, tmp_path):
        source = jpeg_factory(50, 50, name="fake.png")
        with pytest.raises(FormatMismatchError):
            compress_png(source, tmp_path / "out.png")


class TestCompressJpeg:
    """Tests for compress_jpeg."""

    def test_large_jpeg_is_scaled_and_shrunk(self, jpeg_factory, tmp_path):
        source = jpeg_factory(2000, 1500)
        destination = tmp_path / "out.jpg"
        compress_jpeg(source, destination)
        with Image.open(destination) as result:
            assert result.format == "JPEG"
            assert result.size == (1400, 1050)
        assert destination.stat().st_size < source.stat().st_size

    def test_small_jpeg_keeps_dimensions(self, jpeg_factory, tmp_path):
        source = jpeg_factory(200, 150)
        destination = tmp_path / "out.jpeg"
        compress_jpeg(source, destination)
        with Image.open(destination) as result:
            assert result.size == (200, 150)

    def test_non_jpeg_data_is_rejected(self, png_factory, tmp_path):
        source = png_factory(50, 50, name="fake.jpg")
        with pytest.raises(FormatMismatchError):
            compress_jpeg(source, tmp_path / "out.jpg")


class TestRecompressImage:
    """Tests for recompress_image."""

    def test_dispatches_by_extension(self, jpeg_factory, png_factory):
        assert recompress_image(jpeg_factory(900, 900)) is True
        assert recompress_image(png_factory(900, 900)) is True

    def test_other_extensions_are_ignored(self, tmp_path):
        path = tmp_path / "image.tif"
        Image.new("RGB", (10, 10)).save(path, format="TIFF")
        assert recompress_image(path) is False


class TestHighBitDepth:
    """Tests for 16-bit grayscale sources."""

    def test_sixteen_bit_gradient_survives_resize(self, tmp_path):
        """A 16-bit gradient should be rescaled to 8 bits, not clipped to white."""
        source = tmp_path / "deep.png"
        row = np.linspace(0, 65535, 800).astype(np.uint16)
        Image.fromarray(np.tile(row, (600, 1))).save(source, format="PNG")
        destination = tmp_path / "out.png"

        compress_png(source, destination)

        with Image.open(destination) as result:
            assert result.size == (640, 480)
            pixels = np.asarray(result.convert("L"))
        assert pixels[:, :10].max() < 16
        assert pixels[:, -10:].min() > 239
        assert np.mean(pixels == 255) < 0.05
        assert abs(float(pixels.mean()) - 127.5) < 8


class TestDecoderErrors:
    """Tests for Pillow errors surfacing as engine errors."""

    def test_decompression_bomb_is_wrapped(self, png_factory, tmp_path, monkeypatch):
        source = png_factory(900, 900)
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
        with pytest.raises(CompressionIOError) as exc_info:
            compress_png(source, tmp_path / "out.png")
        assert isinstance(exc_info.value.__cause__, Image.DecompressionBombError)

    def test_decompression_bomb_jpeg_is_wrapped(self, jpeg_factory, tmp_path, monkeypatch):
        source = jpeg_factory(900, 900)
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
        with pytest.raises(CompressionIOError):
            compress_jpeg(source, tmp_path / "out.jpg")
