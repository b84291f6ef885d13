"""
Progress accounting for compression jobs.

A ProgressTracker accumulates bytes against a known total and notifies an
observer callback with ``(bytes_written, total_size)`` on every update.
ProgressWriter mirrors every write to an underlying sink into the tracker.
"""
import logging
from typing import BinaryIO, Callable, Optional

# Set up logging
logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ProgressTracker:
    """
    Tracks bytes processed for a single job.

    The total size is set once before any bytes are reported. Notifications
    never go backwards: when the counter runs past a known total (container
    overhead on incompressible input), the reported value is held at the total.

    Example:
        tracker = ProgressTracker(lambda done, total: print(done, total))
        tracker.set_total_size(100)
        tracker.add_progress(40)
        tracker.set_complete()
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.total_size = 0
        self.bytes_written = 0
        self._last_reported = 0

    def set_total_size(self, size: int) -> None:
        """Record the total size and emit a baseline notification at zero."""
        self.total_size = max(0, int(size))
        self._last_reported = 0
        self.report_progress(0)

    def add_progress(self, count: int) -> None:
        """Advance the counter by ``count`` bytes and notify the observer."""
        if count <= 0:
            return
        self.bytes_written += count
        self.report_progress(self.bytes_written)

    def report_progress(self, bytes_written: int) -> None:
        """Notify the observer without changing the counter."""
        current = bytes_written
        if self.total_size and current > self.total_size:
            current = self.total_size
        current = max(current, self._last_reported)
        self._last_reported = current
        if self.callback is not None:
            self.callback(current, self.total_size)

    def set_complete(self) -> None:
        """Force the counter to the total and emit the final notification."""
        self.bytes_written = self.total_size
        self._last_reported = self.total_size
        if self.callback is not None:
            self.callback(self.total_size, self.total_size)

    @property
    def percentage(self) -> float:
        if self.total_size <= 0:
            return 0.0
        return min(self.bytes_written, self.total_size) / self.total_size * 100


class ProgressWriter:
    """
    Pass-through writer that reports accepted bytes to a ProgressTracker.

    Only ``write`` and ``flush`` are exposed, so zipfile treats the stream as
    non-seekable and never rewrites bytes it already counted.
    """

    def __init__(self, sink: BinaryIO, tracker: ProgressTracker):
        self.sink = sink
        self.tracker = tracker
        self.progress = 0

    def write(self, data) -> int:
        written = self.sink.write(data)
        if written is None:
            written = 0
        if written > 0:
            self.progress += written
            self.tracker.add_progress(written)
        return written

    def flush(self) -> None:
        self.sink.flush()


def logging_progress_observer(label: str, log: Optional[logging.Logger] = None) -> ProgressCallback:
    """
    Build an observer that logs progress lines.

    A line is logged whenever the whole-number percentage advances, plus once
    on completion, so a chunked copy does not flood the log.

    Args:
        label: Prefix for every log line (e.g. "Compression")
        log: Logger to use (defaults to this module's logger)

    Returns:
        Callback suitable for ProgressTracker
    """
    log = log or logger
    state = {"percent": -1}

    def observer(bytes_written: int, total_size: int) -> None:
        if total_size <= 0:
            return
        percent = int(bytes_written * 100 / total_size)
        if percent == state["percent"] and bytes_written != total_size:
            return
        state["percent"] = percent
        log.info(
            f"{label} progress: {bytes_written / total_size * 100:.2f}% "
            f"({bytes_written}/{total_size} bytes)"
        )

    return observer
