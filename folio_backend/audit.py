"""Audit trail of entity changes and access decisions, written as JSON lines."""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, TextIO

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = dict(getattr(record, "fields", {}))
        entry["level"] = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        entry["msg"] = record.getMessage()
        entry["time"] = time.strftime(TIMESTAMP_FORMAT, time.localtime(record.created))
        return json.dumps(entry, sort_keys=True, default=str)


class AuditLogger:
    """Writes create, update, delete and access events to separate log files.

    Every event also goes to ``stream`` (standard output by default).
    """

    def __init__(self, logs_dir: str | os.PathLike[str] = "logs", stream: TextIO | None = None) -> None:
        directory = Path(logs_dir)
        try:
            directory.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError:
            directory = Path(".")
        self.logs_dir = directory
        self._stream = stream if stream is not None else sys.stdout
        self._loggers = {
            kind: self._setup_logger(kind, directory / f"{kind}.log")
            for kind in ("create", "update", "delete", "access")
        }

    def _setup_logger(self, kind: str, path: Path) -> logging.Logger:
        logger = logging.Logger(f"audit.{kind}", level=logging.INFO)
        formatter = _JsonFormatter()
        handlers: list[logging.Handler] = [logging.StreamHandler(self._stream)]
        try:
            handlers.append(logging.FileHandler(path, mode="a", encoding="utf-8"))
        except OSError:
            pass
        for handler in handlers:
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        return logger

    def _log(self, kind: str, level: int, message: str, fields: dict[str, Any]) -> None:
        self._loggers[kind].log(level, message, extra={"fields": fields})

    def log_create(self, entity: str, entity_id: int, data: dict[str, Any] | None) -> None:
        self._log("create", logging.INFO, "Entity created",
                  {"entity": entity, "id": entity_id, "data": data})

    def log_update(self, entity: str, entity_id: int, data: dict[str, Any] | None) -> None:
        self._log("update", logging.INFO, "Entity updated",
                  {"entity": entity, "id": entity_id, "data": data})

    def log_delete(self, entity: str, entity_id: int, data: dict[str, Any] | None) -> None:
        self._log("delete", logging.INFO, "Entity deleted",
                  {"entity": entity, "id": entity_id, "data": data})

    def log_access(self, entity: str, entity_id: int, user_id: str, allowed: bool) -> None:
        level, message = (logging.INFO, "Access granted") if allowed else (logging.WARNING, "Access denied")
        self._log("access", level, message,
                  {"entity": entity, "id": entity_id, "userID": user_id, "allowed": allowed})

    def close(self) -> None:
        """Flush and close the log files."""
        for logger in self._loggers.values():
            for handler in list(logger.handlers):
                handler.flush()
                handler.close()
                logger.removeHandler(handler)

    def __enter__(self) -> AuditLogger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()