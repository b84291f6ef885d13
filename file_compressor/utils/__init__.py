"""
Utility functions for the file compressor.
"""
from file_compressor.utils.metrics import (
    get_cpu_mem,
    calculate_image_metrics,
    measure_compression_performance,
    PerformanceTimer
)

from file_compressor.utils.file_handling import (
    sanitize_filename,
    ensure_directory,
    get_upload_filepath,
    get_compressed_filepath,
    cleanup_file_later,
    schedule_cleanup,
    scratch_paths
)

__all__ = [
    # Metrics utilities
    'get_cpu_mem',
    'calculate_image_metrics',
    'measure_compression_performance',
    'PerformanceTimer',

    # File handling utilities
    'sanitize_filename',
    'ensure_directory',
    'get_upload_filepath',
    'get_compressed_filepath',
    'cleanup_file_later',
    'schedule_cleanup',
    'scratch_paths'
]
