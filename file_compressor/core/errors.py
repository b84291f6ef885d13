"""
Error types raised by the compression engine.

Every error carries enough context (path, format, stage) in its message to
diagnose a failure without re-running at a higher log level.
"""
from typing import Optional


class CompressorError(Exception):
    """Base class for all compression engine errors"""


class PathError(CompressorError):
    """Source path is missing or unreadable"""

    def __init__(self, path, reason: str = "source path does not exist"):
        self.path = str(path)
        super().__init__(f"source path error: {reason}: {self.path}")


class UnsupportedFormatError(CompressorError, ValueError):
    """Format name is unknown or not implemented"""

    def __init__(self, format_name: str, kind: str = "compression"):
        self.format_name = format_name
        super().__init__(f"unsupported {kind} format: {format_name}")


class FormatMismatchError(CompressorError, ValueError):
    """Declared format does not match the source file"""

    def __init__(self, path, format_name: str, detail: Optional[str] = None):
        self.path = str(path)
        self.format_name = format_name
        message = detail or f"source file must be a {format_name.upper()} for {format_name.upper()} compression"
        super().__init__(f"{message}: {self.path}")


class IllegalPathError(CompressorError):
    """Archive entry would be extracted outside the destination root"""

    def __init__(self, entry_name: str, destination):
        self.entry_name = entry_name
        self.destination = str(destination)
        super().__init__(f"illegal file path: {entry_name!r} escapes {self.destination}")


class CompressionIOError(CompressorError):
    """Read, write or stat failure while streaming"""

    def __init__(self, path, action: str, cause: Optional[BaseException] = None):
        self.path = str(path)
        self.action = action
        message = f"failed to {action}: {self.path}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class OptimizationError(CompressorError):
    """PDF optimization pipeline exhausted without success"""

    def __init__(self, stage: str, message: str, path=None):
        self.stage = stage
        self.path = str(path) if path is not None else None
        text = f"PDF optimization failed at stage '{stage}': {message}"
        if self.path:
            text = f"{text} ({self.path})"
        super().__init__(text)
