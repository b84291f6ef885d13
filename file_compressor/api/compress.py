"""
Compression API endpoints.

Provides upload-and-compress, format listing and download of results.
"""
import os
import time
import shutil
import logging

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse

from file_compressor import MAX_UPLOAD_SIZE, RETENTION_SECONDS
from file_compressor.core import (
    SUPPORTED_FORMATS,
    CompressorError,
    FormatMismatchError,
    PathError,
    ProgressTracker,
    UnsupportedFormatError,
    compress_with_progress,
    logging_progress_observer
)
from file_compressor.models.base import CompressResponse, FormatsResponse
from file_compressor.utils.file_handling import (
    get_compressed_filepath,
    get_upload_filepath,
    sanitize_filename,
    schedule_cleanup
)
from file_compressor.utils.metrics import (
    PerformanceTimer,
    calculate_image_metrics,
    get_cpu_mem,
    measure_compression_performance
)

# Set up logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["Compression"])

UPLOAD_CHUNK_SIZE = 1024 * 1024
IMAGE_FORMATS = ("png", "jpg", "jpeg")


class UploadTooLargeError(Exception):
    pass


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = CompressResponse(success=False, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _status_for(error: CompressorError) -> int:
    if isinstance(error, (UnsupportedFormatError, FormatMismatchError)):
        return 400
    if isinstance(error, PathError):
        return 404
    return 500


async def _store_upload(file: UploadFile, destination: str) -> int:
    size = 0
    try:
        with open(destination, "wb") as buffer:
            while chunk := await file.read(UPLOAD_CHUNK_SIZE):
                size += len(chunk)
                if size > MAX_UPLOAD_SIZE:
                    raise UploadTooLargeError(f"File exceeds the {MAX_UPLOAD_SIZE} byte upload limit")
                buffer.write(chunk)
    except UploadTooLargeError:
        shutil.rmtree(os.path.dirname(destination), ignore_errors=True)
        raise
    finally:
        await file.close()
    return size


def _resolve_format(format_name: str, filename: str) -> str:
    if format_name:
        return format_name.strip().lower()
    # Auto-select: use the upload's own extension, ZIP when it has none
    extension = os.path.splitext(filename)[1].lower()
    return extension[1:] if extension else "zip"


@router.get("/api/formats", response_model=FormatsResponse)
async def get_formats():
    """Return the compression formats accepted by /api/compress."""
    return FormatsResponse(formats=list(SUPPORTED_FORMATS))


@router.post("/api/compress", response_model=CompressResponse)
async def compress_file(
    file: UploadFile = File(...),
    format_name: str = Form("", alias="format")
):
    """
    Compress an uploaded file.

    - **file**: The file to compress
    - **format**: zip, png, jpg, jpeg or pdf; defaults to the file's extension

    Returns:
        Sizes, timing and a download link for the compressed file
    """
    if not file.filename:
        return _error_response(400, "Uploaded file must have a filename")

    filename = sanitize_filename(file.filename)
    format_name = _resolve_format(format_name, filename)
    logger.info(f"Using compression format: {format_name}")

    timestamp = time.time_ns()
    upload_path = get_upload_filepath(filename, timestamp)
    try:
        input_size = await _store_upload(file, upload_path)
    except UploadTooLargeError as e:
        logger.warning(f"Rejected upload {filename}: {e}")
        return _error_response(413, str(e))
    logger.info(f"Received file: {filename} ({input_size} bytes)")

    stem = os.path.splitext(filename)[0]
    output_filename = f"{timestamp}_{stem}_compressed.{format_name}"
    output_path = get_compressed_filepath(output_filename)

    tracker = ProgressTracker(logging_progress_observer("Compression", logger))
    try:
        with PerformanceTimer() as timer:
            await run_in_threadpool(compress_with_progress, upload_path, output_path, format_name, tracker)
    except CompressorError as e:
        logger.error(f"Error compressing file: {e}")
        shutil.rmtree(os.path.dirname(upload_path), ignore_errors=True)
        if os.path.exists(output_path):
            os.remove(output_path)
        return _error_response(_status_for(e), f"Error compressing file: {e}")

    output_size = os.path.getsize(output_path)
    logger.info(
        f"Successfully compressed {filename} to {output_path}. "
        f"Original: {input_size} bytes, Compressed: {output_size} bytes"
    )

    performance = measure_compression_performance(input_size, output_size, timer.execution_time)
    psnr, ssim = None, None
    if format_name in IMAGE_FORMATS:
        psnr, ssim = await run_in_threadpool(calculate_image_metrics, upload_path, output_path)

    cpu_mem = get_cpu_mem()

    schedule_cleanup(os.path.dirname(upload_path), RETENTION_SECONDS)
    schedule_cleanup(output_path, RETENTION_SECONDS)

    return CompressResponse(
        success=True,
        message="File compressed successfully",
        download_link=f"/download/{output_filename}",
        input_size=input_size,
        output_size=output_size,
        format=format_name,
        compression_ratio=performance["compression_ratio"],
        space_savings_percent=performance["space_savings_percent"],
        compression_time=round(timer.execution_time, 4),
        cpu_usage=cpu_mem["cpu_usage"],
        memory_usage=cpu_mem["memory_usage"],
        psnr=psnr,
        ssim=ssim
    )


@router.get("/download/{filename}", response_class=FileResponse)
async def download_file(filename: str):
    """
    Download a compressed file.

    - **filename**: Name returned in the compress response's download link
    """
    # Only bare file names; anything with a path component is rejected
    if os.path.basename(filename) != filename or filename in ("", ".", ".."):
        raise HTTPException(status_code=400, detail="Invalid filename")

    file_path = get_compressed_filepath(filename)
    if not os.path.isfile(file_path):
        raise HTTPException(status_code=404, detail="File not found")

    logger.info(f"Serving {file_path}")
    return FileResponse(
        file_path,
        media_type="application/octet-stream",
        filename=filename
    )
