"""
PNG and JPEG re-encoding with tiered downsampling.

Images are decoded fully into memory, optionally scaled down according to
the CompressionPolicy, and written back with the most aggressive encoder
settings. Re-encoding is a single synchronous pass; it reports no progress.
"""
import logging
from pathlib import Path
from typing import Optional

from PIL import Image

from file_compressor.core.errors import CompressionIOError, FormatMismatchError
from file_compressor.models.options import DEFAULT_POLICY, CompressionPolicy

# Set up logging
logger = logging.getLogger(__name__)

PNG_EXTENSIONS = (".png",)
JPEG_EXTENSIONS = (".jpg", ".jpeg")


def _to_eight_bit(image: Image.Image) -> Image.Image:
    # 16-bit grayscale decodes as I/I;16; a plain convert clips instead of scaling
    if image.mode.startswith("I"):
        return image.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    return image


def _prepare_for_resample(image: Image.Image) -> Image.Image:
    image = _to_eight_bit(image)
    # Pillow falls back to nearest-neighbour for palette and bilevel images
    if image.mode in ("P", "1"):
        if image.mode == "P" and "transparency" in image.info:
            return image.convert("RGBA")
        return image.convert("RGB")
    if image.mode not in ("RGB", "RGBA", "L", "LA"):
        return image.convert("RGBA" if "A" in image.getbands() else "RGB")
    return image


def downscale(image: Image.Image, policy: CompressionPolicy = DEFAULT_POLICY) -> Image.Image:
    """
    Scale an image down according to the tiered policy.

    Args:
        image: Decoded image
        policy: Thresholds and scale factors to apply

    Returns:
        The resized image, or the original image when no resize is needed
    """
    width, height = image.size
    new_width, new_height = policy.target_dimensions(width, height)
    if (new_width, new_height) == (width, height):
        return image

    logger.debug(f"Resizing {width}x{height} image to {new_width}x{new_height}")
    return _prepare_for_resample(image).resize(
        (new_width, new_height), resample=Image.Resampling.BICUBIC
    )


def _load_image(source: Path, expected_format: str) -> Image.Image:
    try:
        with Image.open(source) as image:
            image.load()
            detected = image.format
            loaded = image.copy()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise CompressionIOError(source, f"decode {expected_format}", e) from e

    if detected != expected_format:
        raise FormatMismatchError(
            source, expected_format.lower(),
            f"expected {expected_format} image data but found {detected or 'unknown'}"
        )
    return loaded


def compress_png(source, destination, policy: Optional[CompressionPolicy] = None) -> Path:
    """
    Re-encode a PNG at maximum compression, downsampling large images.

    Args:
        source: PNG file to read
        destination: Output path (may equal source for in-place re-encoding)
        policy: Optional override of the default CompressionPolicy

    Returns:
        Path of the written PNG

    Raises:
        FormatMismatchError: If the source does not hold PNG data
        CompressionIOError: If decoding or encoding fails
    """
    policy = policy or DEFAULT_POLICY
    source = Path(source)
    destination = Path(destination)

    image = _load_image(source, "PNG")
    try:
        image = downscale(image, policy)
        image.save(destination, format="PNG", optimize=True, compress_level=policy.png_compress_level)
    except (OSError, ValueError) as e:
        raise CompressionIOError(destination, "encode PNG", e) from e

    logger.info(f"Re-encoded PNG {source} -> {destination} ({image.width}x{image.height})")
    return destination


def compress_jpeg(source, destination, policy: Optional[CompressionPolicy] = None) -> Path:
    """
    Re-encode a JPEG at a fixed very-low quality, downsampling large images.

    Args:
        source: JPEG file to read
        destination: Output path (may equal source for in-place re-encoding)
        policy: Optional override of the default CompressionPolicy

    Returns:
        Path of the written JPEG

    Raises:
        FormatMismatchError: If the source does not hold JPEG data
        CompressionIOError: If decoding or encoding fails
    """
    policy = policy or DEFAULT_POLICY
    source = Path(source)
    destination = Path(destination)

    image = _load_image(source, "JPEG")
    try:
        image = downscale(_to_eight_bit(image), policy)
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(destination, format="JPEG", quality=policy.jpeg_quality)
    except (OSError, ValueError) as e:
        raise CompressionIOError(destination, "encode JPEG", e) from e

    logger.info(f"Re-encoded JPEG {source} -> {destination} ({image.width}x{image.height})")
    return destination


def recompress_image(path, policy: Optional[CompressionPolicy] = None) -> bool:
    """
    Re-encode a PNG or JPEG file in place, chosen by extension.

    Returns:
        True if the file was re-encoded, False if its extension is not handled
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in JPEG_EXTENSIONS:
        compress_jpeg(path, path, policy)
        return True
    if suffix in PNG_EXTENSIONS:
        compress_png(path, path, policy)
        return True
    return False
