"""Logging helpers: JSON lines for containers, coloured lines for an operator console."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

_RESERVED = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()) | {"message", "asctime"}

_RESET = "\033[0m"
_COLORS = {
    "ok": "\033[32m",
    logging.DEBUG: "\033[90m",
    logging.INFO: "\033[90m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[31m",
}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """Serialize log records as compact JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = _extras(record)
        if extras:
            payload["context"] = extras

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str)


class ConsoleFormatter(logging.Formatter):
    """Render records as single coloured lines; `outcome="ok"` records print green."""

    def format(self, record: logging.LogRecord) -> str:
        extras = _extras(record)
        color_key: Any = "ok" if extras.get("outcome") == "ok" else record.levelno
        color = _COLORS.get(color_key, "")

        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        context = " ".join(f"{key}={value}" for key, value in extras.items() if key != "outcome")
        line = f"{stamp} | {record.getMessage()}"
        if context:
            line = f"{line} {context}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return f"{color}{line}{_RESET}" if color else line


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure process-wide logging once."""

    root = logging.getLogger()
    if getattr(root, "_ema_scanner_configured", False):
        return

    root.handlers.clear()
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(ConsoleFormatter() if fmt.lower() == "console" else JsonFormatter())

    root.addHandler(handler)
    root.setLevel(level.upper())
    setattr(root, "_ema_scanner_configured", True)
