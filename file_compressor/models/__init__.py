"""
Data models for the file compressor.

This package provides Pydantic models for engine configuration, job
validation and API response documentation.
"""
from file_compressor.models.base import (
    BaseMetrics,
    BaseQualityMetrics,
    CompressResponse,
    FormatsResponse
)

from file_compressor.models.job import CompressionJob

from file_compressor.models.options import (
    DEFAULT_PDF_CONFIG,
    DEFAULT_POLICY,
    CompressionPolicy,
    PdfOptimizationConfig
)

__all__ = [
    # API models
    'BaseMetrics',
    'BaseQualityMetrics',
    'CompressResponse',
    'FormatsResponse',

    # Engine models
    'CompressionJob',
    'CompressionPolicy',
    'PdfOptimizationConfig',
    'DEFAULT_POLICY',
    'DEFAULT_PDF_CONFIG'
]
