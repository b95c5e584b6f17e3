"""Centralized exception logger for prompt-version.

Unexpected failures (store corruption, programming errors) are appended as
JSON records to .prompt-versions/error_<timestamp>_<pid>.log with their
stack trace and command context. Expected failures are reported to the user
and never reach this log.
"""

import json
import os
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import VERSION_DIR_NAME


class ExceptionLogger:
    """Centralized exception logging facility."""

    _instance: Optional["ExceptionLogger"] = None
    log_file_path: Optional[Path] = None

    def __init__(self, log_file_path: Path):
        """Initialize exception logger with specific log file path.

        Args:
            log_file_path: Path to the log file for writing exceptions
        """
        self.log_file_path = log_file_path

    @classmethod
    def initialize(cls, workspace_root: Path) -> "ExceptionLogger":
        """Initialize the global exception logger (idempotent singleton).

        The log file is only created when the first exception is written, so
        clean runs leave nothing behind.

        WARNING: If already initialized, returns the existing instance. Tests
        should reset cls._instance = None if they need a fresh one.
        """
        if cls._instance is not None:
            return cls._instance

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file_path = (
            workspace_root / VERSION_DIR_NAME / f"error_{timestamp}_{os.getpid()}.log"
        )

        cls._instance = cls(log_file_path)
        return cls._instance

    @classmethod
    def get_instance(cls) -> Optional["ExceptionLogger"]:
        return cls._instance

    def log_exception(
        self,
        exception: BaseException,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an exception with full context.

        Args:
            exception: The exception to log
            context: Additional context data to include in log (optional)
        """
        if not self.log_file_path:
            return

        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "thread": threading.current_thread().name,
            "exception_type": type(exception).__name__,
            "exception_message": str(exception),
            "stack_trace": "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            ),
            "context": context or {},
        }

        # Outside an initialized workspace there is nowhere to write
        if not self.log_file_path.parent.is_dir():
            return

        with open(self.log_file_path, "a") as f:
            f.write(json.dumps(log_entry, indent=2))
            f.write("\n---\n")
