"""
Error types and error logging for flashvocab.

Most failures are reported as values (False, None, an envelope with
``success: False``). The exceptions here cover the rest: calling the data
layer before it is ready, and asking for a store backend that does not exist.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .paths import get_data_dir


class StoreNotInitializedError(RuntimeError):
    """The store was used before StoreManager.initialize() succeeded."""

    def __init__(self, message: str = "Store not initialized. Call initialize() first."):
        super().__init__(message)


class UnsupportedStoreError(ValueError):
    """Unknown store kind."""


class UnimplementedStoreError(NotImplementedError):
    """Known store kind with no implementation yet."""


class IndexClientError(Exception):
    """Error communicating with the search index."""


def _error_log_path(data_dir: Optional[Path] = None) -> Path:
    return (data_dir or get_data_dir()) / "flashvocab-errors.log"


def log_exception(exc: Exception, context: str = "", data_dir: Optional[Path] = None) -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)
        data_dir: Directory for the log; the per-user data directory if None

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path(Path(data_dir) if data_dir else None)
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}] {type(exc).__name__}")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(exc)))
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
