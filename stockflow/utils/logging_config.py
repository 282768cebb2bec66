"""
Logging configuration for the stock-and-flow engine
JSON lines for production, readable lines for local runs. Simulation context
passed through ``extra`` (model, t, h, method) is kept as structured fields.
"""

import logging
import sys
import json
from typing import Any, Dict, Optional, TYPE_CHECKING
from logging.handlers import RotatingFileHandler
from pathlib import Path

if TYPE_CHECKING:
    from stockflow.config import Settings

# Context keys that engine code passes via ``extra``
SIMULATION_FIELDS = ("model", "t", "h", "method")

# Attributes every LogRecord carries; anything else came in via ``extra``
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, simulation context grouped under "simulation\""""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = _extra_fields(record)
        simulation = {k: extra.pop(k) for k in SIMULATION_FIELDS if k in extra}
        if simulation:
            entry["simulation"] = simulation
        entry.update(extra)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Plain text lines with a compact simulation context suffix"""

    def __init__(self):
        super().__init__(
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = [
            f"{key}={getattr(record, key)}"
            for key in SIMULATION_FIELDS
            if hasattr(record, key)
        ]
        if context:
            line = f"{line} [{' '.join(context)}]"
        return line


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Install console (and optional rotating file) handlers on the root logger

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines instead of readable text
        log_file: Optional log file path; parent directories are created
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep
    """
    formatter: logging.Formatter = (
        JSONFormatter() if json_format else HumanReadableFormatter()
    )

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


def setup_logging_from_settings(settings: "Settings") -> None:
    """Configure logging from application settings"""
    setup_logging(
        level=settings.log_level,
        json_format=settings.log_format_json,
        log_file=settings.log_file,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
