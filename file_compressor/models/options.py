"""
Configuration objects for the compression engine.

Quality settings are fixed by default and documented here instead of living
as literals inside the pipelines; callers may pass an overridden instance.
"""
from typing import Any, Dict, Tuple

import pikepdf
from pydantic import BaseModel, ConfigDict, Field


class CompressionPolicy(BaseModel):
    """Downsampling and encoder settings for PNG/JPEG re-encoding"""
    model_config = ConfigDict(frozen=True)

    large_threshold: int = Field(
        1000, gt=0, description="Images with either side above this many pixels are scaled by large_scale_percent"
    )
    large_scale_percent: int = Field(
        70, ge=1, le=100, description="Scale applied to large images (%)"
    )
    medium_threshold: int = Field(
        500, gt=0, description="Images with either side above this many pixels are scaled by medium_scale_percent"
    )
    medium_scale_percent: int = Field(
        80, ge=1, le=100, description="Scale applied to medium images (%)"
    )
    png_compress_level: int = Field(
        9, ge=0, le=9, description="zlib effort used by the PNG encoder (9 = best compression)"
    )
    jpeg_quality: int = Field(
        1, ge=1, le=95, description="JPEG quality factor (1 = smallest output)"
    )

    def target_dimensions(self, width: int, height: int) -> Tuple[int, int]:
        """
        Apply the tiered downsampling rule.

        Args:
            width: Original width in pixels
            height: Original height in pixels

        Returns:
            Tuple of (width, height) after scaling; unchanged for small images
        """
        if width > self.large_threshold or height > self.large_threshold:
            percent = self.large_scale_percent
        elif width > self.medium_threshold or height > self.medium_threshold:
            percent = self.medium_scale_percent
        else:
            return width, height
        return max(1, width * percent // 100), max(1, height * percent // 100)


class PdfOptimizationConfig(BaseModel):
    """Settings shared by both structural optimization passes"""
    model_config = ConfigDict(frozen=True)

    reader_15: bool = Field(
        True, description="Write PDF 1.5 output so object and xref streams are allowed"
    )
    write_object_streams: bool = Field(
        True, description="Pack indirect objects into compressed object streams"
    )
    write_xref_streams: bool = Field(
        True, description="Write the cross-reference table as a compressed stream"
    )

    def save_options(self) -> Dict[str, Any]:
        """
        Translate the flags into keyword arguments for ``pikepdf.Pdf.save``.

        qpdf writes a cross-reference stream whenever it generates object
        streams, so the two flags only take effect together.
        """
        options: Dict[str, Any] = {
            "compress_streams": True,
            "recompress_flate": True,
        }
        if self.write_object_streams and self.write_xref_streams:
            options["object_stream_mode"] = pikepdf.ObjectStreamMode.generate
        else:
            options["object_stream_mode"] = pikepdf.ObjectStreamMode.disable
        if self.reader_15:
            options["min_version"] = "1.5"
        return options


DEFAULT_POLICY = CompressionPolicy()
DEFAULT_PDF_CONFIG = PdfOptimizationConfig()
