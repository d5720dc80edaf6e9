"""
Structured logging for GoalBot: JSONL action log and a separate error log.
Auto-rotates by date. One record per handled command with fields:
timestamp, action_type, user_id, parameters, result, duration_ms, error.
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Optional

from goalbot.utils.paths import base_path as _base_path


def _utc_today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


class ActionLogger:
    """Append-only JSONL action log and separate error log."""

    def __init__(self, base_path: Optional[str] = None) -> None:
        self.base_path = base_path or _base_path()
        self._logs_dir = os.path.join(self.base_path, "logs")
        self._actions_dir = os.path.join(self._logs_dir, "actions")
        self._errors_dir = os.path.join(self._logs_dir, "errors")
        self._ensure_dirs()
        self._current_date: Optional[str] = None
        self._current_action_file: Optional[Any] = None
        self._error_handler: Optional[logging.FileHandler] = None
        self._lock = threading.Lock()
        self._setup_error_logger()

    def _ensure_dirs(self) -> None:
        """Create logs/actions and logs/errors if they do not exist."""
        try:
            os.makedirs(self._actions_dir, exist_ok=True)
            os.makedirs(self._errors_dir, exist_ok=True)
        except OSError as e:
            logging.error("Failed to create log directories: %s", e)
            raise

    def _setup_error_logger(self) -> None:
        """Attach a WARNING+ file handler at logs/errors/YYYY-MM-DD.log to the root logger."""
        try:
            error_file = os.path.join(self._errors_dir, f"{_utc_today()}.log")
            self._error_handler = logging.FileHandler(error_file, encoding="utf-8")
            self._error_handler.setLevel(logging.WARNING)
            fmt = logging.Formatter(
                "%(asctime)s %(levelname)s [%(name)s] %(message)s"
            )
            self._error_handler.setFormatter(fmt)
            logging.getLogger().addHandler(self._error_handler)
        except OSError as e:
            logging.error("Failed to set up error log file: %s", e)

    def _action_file(self) -> Any:
        """Return open file for today's action log (JSONL). Rotates by date.

        Caller holds ``self._lock``.
        """
        today = _utc_today()
        if self._current_date != today:
            if self._current_action_file is not None:
                try:
                    self._current_action_file.close()
                except OSError:
                    pass
                self._current_action_file = None
            self._current_date = today
        if self._current_action_file is None:
            path = os.path.join(self._actions_dir, f"{today}.jsonl")
            self._current_action_file = open(path, "a", encoding="utf-8")
        return self._current_action_file

    def log_action(
        self,
        *,
        action_type: str,
        user_id: Optional[str] = None,
        parameters: Optional[dict] = None,
        result: str = "success",
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
        **extra: Any,
    ) -> None:
        """Append one JSONL record to logs/actions/YYYY-MM-DD.jsonl."""
        entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "action_type": action_type,
            "user_id": user_id,
            "parameters": parameters if parameters is not None else {},
            "result": result,
            "duration_ms": duration_ms,
            "error": error,
        }
        entry.update(extra)
        # Remove None values for cleaner JSON
        entry = {k: v for k, v in entry.items() if v is not None}
        line = json.dumps(entry, default=str) + "\n"
        try:
            # dispatch runs on worker threads; one writer at a time
            with self._lock:
                f = self._action_file()
                f.write(line)
                f.flush()
        except OSError as e:
            logging.error("Failed to write action log: %s", e)

    def close(self) -> None:
        """Close action log file and remove error file handler."""
        with self._lock:
            if self._current_action_file is not None:
                try:
                    self._current_action_file.close()
                except OSError:
                    pass
                self._current_action_file = None
            self._current_date = None
        if self._error_handler is not None:
            logging.getLogger().removeHandler(self._error_handler)
            self._error_handler.close()
            self._error_handler = None
