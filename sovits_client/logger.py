"""Logger factory for the client and CLI, with an optional JSON formatter."""
import logging
import json
from logging import LogRecord
import sys


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging in production."""

    def format(self, record: LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False)


def get_logger(name: str, json_mode: bool = False, level: str = "INFO") -> logging.Logger:
    """Get a logger with a stderr handler and optional JSON formatting.

    Args:
        name: Logger name (typically the package name so module loggers inherit it)
        json_mode: Use JSON formatter (True for production, False for dev)
        level: Level name applied when the handler is first attached
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        if json_mode:
            formatter = JSONFormatter()
        else:
            formatter = logging.Formatter(
                "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
            )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
