"""
Error types and error logging utilities for codewallet.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class PersistenceError(RuntimeError):
    """A durable read or write failed (medium unavailable, bad data).

    Raised by storage media. The persistence adapter catches it, logs it,
    and keeps the in-memory state authoritative.
    """


def _error_log_path() -> Path:
    """Resolve error log path, respecting CODEWALLET_STORE_PATH."""
    store = os.environ.get("CODEWALLET_STORE_PATH")
    if store:
        return Path(store) / "codewallet-errors.log"
    return Path.home() / ".codewallet" / "codewallet-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
