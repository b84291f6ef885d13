"""
Utilities for measuring compression performance and image quality.
"""
import time
import logging
import numpy as np
import psutil
from PIL import Image
from typing import Tuple, Optional, Dict, Union
from skimage.metrics import peak_signal_noise_ratio, structural_similarity

# Set up logging
logger = logging.getLogger(__name__)

# SSIM needs at least a 7x7 window
MIN_SSIM_SIDE = 7


def get_cpu_mem() -> Dict[str, float]:
    """
    Get current CPU and memory usage.

    Returns:
        Dictionary with CPU and memory usage percentages
    """
    return {
        "cpu_usage": psutil.cpu_percent(interval=None),
        "memory_usage": psutil.virtual_memory().percent
    }


def _to_rgb_array(image: Union[np.ndarray, Image.Image, str]) -> np.ndarray:
    if isinstance(image, np.ndarray):
        return image
    if isinstance(image, Image.Image):
        return np.array(image.convert("RGB"))
    with Image.open(image) as opened:
        return np.array(opened.convert("RGB"))


def calculate_image_metrics(
    original_img: Union[np.ndarray, Image.Image, str],
    compressed_img: Union[np.ndarray, Image.Image, str]
) -> Tuple[Optional[float], Optional[float]]:
    """
    Calculate PSNR and SSIM between an original and a re-encoded image.

    Re-encoding may downsample, so the re-encoded image is scaled back to the
    original's dimensions before comparison.

    Args:
        original_img: Original image (PIL Image, numpy array or file path)
        compressed_img: Re-encoded image (PIL Image, numpy array or file path)

    Returns:
        Tuple of (PSNR, SSIM) rounded to 2 and 4 decimal places respectively.
        Returns (None, None) if the images cannot be compared.
    """
    try:
        original = _to_rgb_array(original_img)
        compressed = _to_rgb_array(compressed_img)
    except OSError as e:
        logger.error(f"Failed to load images for quality metrics: {e}")
        return None, None

    if original.shape != compressed.shape:
        logger.info(f"Image shapes don't match: original {original.shape} vs compressed {compressed.shape}")
        resized = Image.fromarray(compressed).resize(
            (original.shape[1], original.shape[0]), resample=Image.Resampling.BICUBIC
        )
        compressed = np.array(resized)

    if min(original.shape[0], original.shape[1]) < MIN_SSIM_SIDE:
        logger.info("Image too small for SSIM, skipping quality metrics")
        return None, None

    mse = np.mean(np.square(original.astype(np.float32) - compressed.astype(np.float32)))
    if mse < 1e-10:
        # Identical images; keep the value JSON-serializable
        psnr = 100.0
    else:
        psnr = peak_signal_noise_ratio(original, compressed, data_range=255)
    ssim = structural_similarity(original, compressed, data_range=255, channel_axis=2)

    return round(float(psnr), 2), round(float(ssim), 4)


def measure_compression_performance(
    original_size: int,
    compressed_size: int,
    compression_time: float
) -> Dict[str, float]:
    """
    Calculate compression performance metrics.

    Args:
        original_size: Size of the original file in bytes
        compressed_size: Size of the compressed file in bytes
        compression_time: Time taken for compression in seconds

    Returns:
        Dictionary with compression ratio, space savings percentage, and compression speed
    """
    compression_ratio = original_size / compressed_size if compressed_size > 0 else 0
    space_savings = (1 - (compressed_size / original_size)) * 100 if original_size > 0 else 0
    compression_speed = original_size / (compression_time * 1024 * 1024) if compression_time > 0 else 0  # MB/s

    return {
        "compression_ratio": round(compression_ratio, 2),
        "space_savings_percent": round(space_savings, 2),
        "compression_speed_mbps": round(compression_speed, 2)
    }


class PerformanceTimer:
    """
    Context manager for measuring execution time.

    Example:
        with PerformanceTimer() as timer:
            # Code to measure
        execution_time = timer.execution_time
    """

    def __init__(self):
        self.start_time = None
        self.execution_time = 0

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.execution_time = time.time() - self.start_time
        return False  # Don't suppress exceptions
