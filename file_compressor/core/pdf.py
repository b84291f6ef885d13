"""
PDF optimization pipeline.

Optimization is attempted by an ordered list of tiers; the first tier that
reports success wins:

1. GhostscriptTier - rewrites the document with Ghostscript at screen
   resolution. A missing binary or a non-zero exit is a tier miss.
2. PikepdfTier - local fallback: extract embedded images and re-encode
   them, then run two structural optimization passes with pikepdf.

Scratch files for the fallback are named after the destination path
(``<dest>.temp1`` and ``<dest>.tempdir``) and are always removed.
"""
import os
import shutil
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

import pikepdf
from pikepdf import UnsupportedImageTypeError

from file_compressor.core.errors import CompressorError, OptimizationError
from file_compressor.core.raster import recompress_image
from file_compressor.models.options import (
    DEFAULT_PDF_CONFIG,
    DEFAULT_POLICY,
    CompressionPolicy,
    PdfOptimizationConfig
)
from file_compressor.utils.file_handling import scratch_paths

# Set up logging
logger = logging.getLogger(__name__)

# Constants
GHOSTSCRIPT_EXECUTABLES = ("gs", "gswin64c", "gswin32c")
GHOSTSCRIPT_DPI = 72


def find_ghostscript(names: Sequence[str] = GHOSTSCRIPT_EXECUTABLES) -> Optional[str]:
    """Return the path of the first Ghostscript executable found on PATH."""
    for name in names:
        path = shutil.which(name)
        if path:
            return path
    return None


class OptimizationTier:
    """
    One candidate strategy for shrinking a PDF.

    Subclasses return True from ``try_optimize`` when they produced the
    destination file, False for a tier miss, and raise OptimizationError
    when the tier failed in a way worth reporting.
    """

    name = "tier"

    def try_optimize(self, source: Path, destination: Path) -> bool:
        raise NotImplementedError


class GhostscriptTier(OptimizationTier):
    """Delegate to Ghostscript's pdfwrite device with /screen settings"""

    name = "ghostscript"

    def __init__(self, executables: Sequence[str] = GHOSTSCRIPT_EXECUTABLES, dpi: int = GHOSTSCRIPT_DPI):
        self.executables = tuple(executables)
        self.dpi = dpi

    def build_command(self, executable: str, source: Path, destination: Path) -> List[str]:
        return [
            executable,
            "-sDEVICE=pdfwrite",
            "-dPDFSETTINGS=/screen",
            "-dCompatibilityLevel=1.4",
            "-dNOPAUSE",
            "-dQUIET",
            "-dBATCH",
            "-dColorImageDownsampleType=/Bicubic",
            f"-dColorImageResolution={self.dpi}",
            "-dGrayImageDownsampleType=/Bicubic",
            f"-dGrayImageResolution={self.dpi}",
            "-dMonoImageDownsampleType=/Bicubic",
            f"-dMonoImageResolution={self.dpi}",
            f"-sOutputFile={destination}",
            str(source),
        ]

    def try_optimize(self, source: Path, destination: Path) -> bool:
        executable = find_ghostscript(self.executables)
        if executable is None:
            logger.warning("Ghostscript is not installed, falling back to local PDF optimization")
            return False

        command = self.build_command(executable, source, destination)
        logger.info(f"Running Ghostscript on {source}")
        try:
            result = subprocess.run(command, capture_output=True)
        except OSError as e:
            logger.warning(f"Ghostscript could not be started: {e}")
            return False

        if result.returncode != 0 or not destination.exists():
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            logger.warning(f"Ghostscript exited with status {result.returncode}: {stderr}")
            return False
        return True


class PikepdfTier(OptimizationTier):
    """Local multi-stage optimization with pikepdf"""

    name = "pikepdf"

    def __init__(self, config: Optional[PdfOptimizationConfig] = None,
                 policy: Optional[CompressionPolicy] = None):
        self.config = config or DEFAULT_PDF_CONFIG
        self.policy = policy or DEFAULT_POLICY

    def extract_images(self, source: Path, image_dir: Path) -> List[Path]:
        """
        Write the document's embedded raster images to a directory.

        Images pikepdf cannot export are skipped.

        Returns:
            Paths of the extracted image files
        """
        extracted = []
        with pikepdf.open(source) as pdf:
            for page_number, page in enumerate(pdf.pages, start=1):
                for name, raw_image in page.images.items():
                    prefix = image_dir / f"page{page_number}_{str(name).lstrip('/')}"
                    try:
                        filename = pikepdf.PdfImage(raw_image).extract_to(fileprefix=str(prefix))
                    except UnsupportedImageTypeError as e:
                        logger.debug(f"Skipping unsupported image {name} on page {page_number}: {e}")
                        continue
                    extracted.append(Path(filename))
        return extracted

    def recompress_images(self, images: List[Path]) -> int:
        """Re-encode extracted PNG/JPEG files in place; failures are logged."""
        count = 0
        for path in images:
            try:
                if recompress_image(path, self.policy):
                    count += 1
            except CompressorError as e:
                logger.warning(f"Image recompression failed for {path.name}: {e}")
        return count

    def structural_pass(self, source: Path, destination: Path, stage: str) -> None:
        try:
            with pikepdf.open(source) as pdf:
                pdf.save(destination, **self.config.save_options())
        except (pikepdf.PdfError, OSError) as e:
            raise OptimizationError(stage, str(e), source) from e

    def try_optimize(self, source: Path, destination: Path) -> bool:
        with scratch_paths(destination) as (temp_file, temp_dir):
            try:
                images = self.extract_images(source, temp_dir)
            except Exception as e:
                logger.warning(f"Image extraction failed, proceeding with standard optimization: {e}")
            else:
                count = self.recompress_images(images)
                logger.info(f"Extracted {len(images)} images from {source.name}, re-encoded {count}")

            self.structural_pass(source, temp_file, "structural-pass-1")
            self.structural_pass(temp_file, destination, "structural-pass-2")
        return True


def default_tiers(config: Optional[PdfOptimizationConfig] = None,
                  policy: Optional[CompressionPolicy] = None) -> List[OptimizationTier]:
    return [GhostscriptTier(), PikepdfTier(config, policy)]


def optimize_pdf(source, destination, tiers: Optional[Sequence[OptimizationTier]] = None,
                 config: Optional[PdfOptimizationConfig] = None,
                 policy: Optional[CompressionPolicy] = None) -> str:
    """
    Shrink a PDF by running optimization tiers in priority order.

    Args:
        source: PDF to optimize
        destination: Output path
        tiers: Strategies to try (defaults to Ghostscript then pikepdf)
        config: Structural optimization settings for the pikepdf tier
        policy: Image re-encoding settings for the pikepdf tier

    Returns:
        Name of the tier that produced the output

    Raises:
        OptimizationError: If no tier succeeded; identifies the failing stage
    """
    source = Path(source)
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    if tiers is None:
        tiers = default_tiers(config, policy)

    last_error: Optional[OptimizationError] = None
    for tier in tiers:
        try:
            succeeded = tier.try_optimize(source, destination)
        except OptimizationError as e:
            logger.warning(f"PDF tier '{tier.name}' failed: {e}")
            last_error = e
            continue
        if succeeded:
            _keep_smaller(source, destination)
            logger.info(f"Optimized {source} -> {destination} using {tier.name}")
            return tier.name

    if last_error is not None:
        raise last_error
    raise OptimizationError("pipeline", "no optimization tier succeeded", source)


def _keep_smaller(source: Path, destination: Path) -> None:
    original_size = os.path.getsize(source)
    optimized_size = os.path.getsize(destination)
    if optimized_size > original_size:
        logger.info(
            f"Optimized PDF is larger ({optimized_size} > {original_size} bytes), keeping the original"
        )
        shutil.copyfile(source, destination)
