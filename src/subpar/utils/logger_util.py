import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from subpar.config import Settings, load_settings


class JsonFormatter(logging.Formatter):
    """One JSON object per line, the shape hosted log collectors parse."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(settings: Settings) -> logging.Formatter:
    if settings.is_production:
        return JsonFormatter()
    return logging.Formatter(
        '%(asctime)s     || %(name)s \n%(levelname)s   || %(message)s \n',
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _level(settings: Settings) -> int:
    level = logging.getLevelName(settings.log_level)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str, level=None) -> logging.Logger:
    """Get a named logger with standard formatting.

    Example:
        logger = get_logger(__name__)
        logger.info("This is an info message.")

    Environment, level and log directory come from `load_settings()`. The
    level defaults to the configured log level; a file handler is added only
    when a log directory is configured.

    Returns:
        logging.Logger: Configured logger instance.
    """
    settings = load_settings()
    if level is None:
        level = _level(settings)
    logger = logging.getLogger(name)

    # avoid adding duplicate handlers if called repeatedly (common in tests)
    if logger.handlers:
        logger.setLevel(level)
        return logger

    formatter = _make_formatter(settings)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if settings.log_dir:
        logs_dir = Path(settings.log_dir)
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            filehandler = logging.FileHandler(str(logs_dir / f"{name}.log"), encoding="utf-8")
        except OSError:
            # If we cannot create the log file, fall back to streaming only
            filehandler = None
        if filehandler is not None:
            filehandler.setFormatter(formatter)
            logger.addHandler(filehandler)

    logger.setLevel(level)
    # stop passing records to the root logger (avoid duplicated messages)
    logger.propagate = False
    logger.debug("'%s' initialized with level %s", name, logging.getLevelName(level))
    return logger
