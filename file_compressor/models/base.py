"""
Response models for the compression API.
These models define the JSON bodies returned by the HTTP endpoints.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class BaseMetrics(BaseModel):
    """Base class for performance and resource metrics"""
    cpu_usage: float = Field(0.0, description="CPU usage during operation (%)")
    memory_usage: float = Field(0.0, description="Memory usage during operation (%)")


class BaseQualityMetrics(BaseModel):
    """Base class for image quality metrics"""
    psnr: Optional[float] = Field(
        None, description="Peak Signal-to-Noise Ratio between original and re-encoded images"
    )
    ssim: Optional[float] = Field(
        None,
        description="Structural Similarity Index between original and re-encoded images"
    )


class CompressResponse(BaseMetrics, BaseQualityMetrics):
    """Response model for a compression request"""
    success: bool = Field(..., description="Whether the job completed")
    message: Optional[str] = Field(None, description="Human-readable status or error")
    download_link: Optional[str] = Field(None, description="Relative URL of the compressed file")
    input_size: Optional[int] = Field(None, description="Size of the uploaded file in bytes")
    output_size: Optional[int] = Field(None, description="Size of the compressed file in bytes")
    format: Optional[str] = Field(None, description="Format used for the job")
    compression_ratio: Optional[float] = Field(
        None, description="Compression ratio (input_size / output_size)"
    )
    space_savings_percent: Optional[float] = Field(
        None, description="Percentage of space saved through compression"
    )
    compression_time: Optional[float] = Field(
        None, description="Time taken for the job in seconds"
    )


class FormatsResponse(BaseModel):
    """Response model for the supported formats listing"""
    formats: List[str] = Field(..., description="Format names accepted by the compress endpoint")
