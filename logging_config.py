"""
Logging for the HRMS Notification Hub.

Every record carries the request id and the identity whose feed is being built,
so one user's polling passes can be followed through the log. Console output is
JSON in production and coloured text elsewhere; the rotating file is always JSON.
"""

import logging
import logging.handlers
import json
import os
from datetime import datetime, timezone
from contextvars import ContextVar
from typing import Dict, Optional

from config import config

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
user_id_var: ContextVar[str] = ContextVar("user_id", default="-")
role_var: ContextVar[str] = ContextVar("role", default="-")

QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "motor": logging.WARNING,
    "pymongo": logging.WARNING,
}


def log_context() -> Dict[str, str]:
    return {
        "request_id": request_id_var.get(),
        "user_id": user_id_var.get(),
        "role": role_var.get(),
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            **log_context(),
            "message": record.getMessage(),
        }
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """One coloured line per record: level, logger, feed context, message."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        ctx = log_context()
        line = (
            f"{color}{record.levelname:<7}{self.RESET} {record.name} "
            f"[req={ctx['request_id']} user={ctx['user_id']} role={ctx['role']}] {record.getMessage()}"
        )
        data = getattr(record, "data", None)
        if data:
            line += f"  | data={data}"
        if record.exc_info and record.exc_info[0] is not None:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None):
    """Install console and file handlers on the root logger. Safe to call more than once."""
    env = config.ENV.lower()
    level = (level or config.LOG_LEVEL or ("DEBUG" if env == "development" else "INFO")).upper()
    log_dir = log_dir if log_dir is not None else config.LOG_DIR

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(JSONFormatter() if env == "production" else DevFormatter())
    root.addHandler(console)

    log_file = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, "notifyhub.log")
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8",
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    get_logger("logging").info(f"Logging initialized | env={env} level={level} file={log_file or '-'}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"notifyhub.{name}")
