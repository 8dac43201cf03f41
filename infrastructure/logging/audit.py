import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional


class WindowsSafeRotatingFileHandler(RotatingFileHandler):
    """
    A RotatingFileHandler that closes the file handle before rotation and
    tolerates PermissionError when another process holds the file.
    """
    def doRollover(self):
        if self.stream:
            self.stream.close()
            self.stream = None
        try:
            super().doRollover()
        except PermissionError:
            # File still locked on Windows; keep writing to the current file.
            pass
        finally:
            if not self.stream:
                self.stream = self._open()


class SecurityAuditLogger:
    """Append-only JSON record of security decisions (quarantine, release, sweep).

    With no ``log_path`` the records only go to the ``iothub.security``
    logger's existing handlers, which is what tests use.
    """

    LOGGER_NAME = "iothub.security"

    def __init__(self, log_path: Optional[str] = None, level: str = "INFO") -> None:
        self.logger = logging.getLogger(self.LOGGER_NAME)
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self.log_path = Path(log_path) if log_path else None

        if self.log_path is None:
            return

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger.propagate = False

        # Check if handler already exists to avoid duplicate handlers
        if not any(isinstance(handler, RotatingFileHandler) for handler in self.logger.handlers):
            handler_cls = WindowsSafeRotatingFileHandler if sys.platform == "win32" else RotatingFileHandler
            handler = handler_cls(
                filename=str(self.log_path),
                maxBytes=10 * 1024 * 1024,  # 10 MB
                backupCount=30,
                encoding="utf-8",
                delay=True,
            )
            formatter = logging.Formatter(
                fmt="%(asctime)sZ | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_event(self, device_id: str, action: str, outcome: str, **metadata: Any) -> None:
        payload: Dict[str, Any] = {
            "device_id": device_id,
            "action": action,
            "outcome": outcome,
        }
        if metadata:
            payload["meta"] = metadata

        self.logger.info(json.dumps(payload, default=str))
