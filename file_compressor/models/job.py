"""
Validated description of a single compression call.
"""
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class CompressionJob(BaseModel):
    """One compress invocation; immutable once validated"""
    model_config = ConfigDict(frozen=True)

    source: Path = Field(..., description="File or directory to compress")
    destination: Path = Field(..., description="Output archive or file")
    format: str = Field(..., description="Normalized (lower-case) format name")
    is_directory: bool = Field(False, description="Whether the source is a directory tree")
