"""
Logging setup for the RecruitPro service.

Everything logs through stdlib ``logging`` under the ``recruitpro.``
namespace. Context passed with ``extra={...}`` is rendered after the
message (or as JSON fields in production), so call sites never format
identifiers into the message just to make them searchable.
"""
import functools
import inspect
import json
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT = "recruitpro"

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-36s | %(funcName)-22s:%(lineno)-4d | %(message)s",
}

ENVIRONMENT_PROFILES: Dict[str, Dict[str, Any]] = {
    "production": {"level": None, "enable_file": True, "format_style": "json"},
    "development": {"level": "DEBUG", "enable_file": True, "format_style": "detailed"},
    "testing": {"level": "WARNING", "enable_file": False, "format_style": "simple"},
}


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")}


class ContextFormatter(logging.Formatter):
    """Text formatter that appends ``extra`` context as key=value pairs"""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _extras(record)
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line, ``extra`` context included as fields"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _rotating_handler(filename: Path, level: str, formatter: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": str(filename),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name
        log_file: Main log file (defaults to $LOG_DIR/recruitpro_<date>.log)
        enable_console: Log to stdout
        enable_file: Log to a rotating file plus an errors-only file
        format_style: 'simple', 'detailed' or 'json'
    """
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    stamp = datetime.now().strftime("%Y%m%d")
    formatter = "json" if format_style == "json" else "text"

    handlers: Dict[str, Any] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": formatter,
            "stream": "ext://sys.stdout",
        }
    if enable_file:
        log_dir.mkdir(exist_ok=True)
        handlers["file"] = _rotating_handler(log_file or log_dir / f"recruitpro_{stamp}.log", level, formatter)
        handlers["error_file"] = _rotating_handler(log_dir / f"recruitpro_errors_{stamp}.log", "ERROR", formatter)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {
                "()": ContextFormatter,
                "fmt": FORMATS.get(format_style, FORMATS["detailed"]),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {"()": JsonFormatter},
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
        "loggers": {
            # uvicorn installs its own handlers; route them through ours
            "uvicorn": {"level": "INFO", "handlers": list(handlers), "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": list(handlers), "propagate": False},
            "pdfminer": {"level": "ERROR"},
        },
    })

    get_logger("logging").info(
        f"Logging configured - Level: {level}, Console: {enable_console}, File: {enable_file}",
        extra={"format": format_style},
    )


def configure_for_environment(environment: Optional[str] = None, level: Optional[str] = None) -> None:
    """Pick a logging profile from ENVIRONMENT (production/development/testing)"""
    environment = (environment or os.getenv("ENVIRONMENT", "development")).lower()
    profile = dict(ENVIRONMENT_PROFILES.get(environment, {"level": None}))
    profile["level"] = profile["level"] or (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    setup_logging(**profile)


def get_logger(name: str) -> logging.Logger:
    """Logger under the recruitpro namespace (``__name__`` of our modules already is)"""
    if name == ROOT or name.startswith(ROOT + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT}.{name}")


def _elapsed(start: float) -> float:
    return time.perf_counter() - start


def log_function_call(func):
    """Debug-log entry, exit and duration of a function (sync or async)"""
    logger = get_logger(func.__module__)

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.warning(f"{func.__name__} raised after {_elapsed(start):.3f}s: {e}")
                raise
            logger.debug(f"{func.__name__} completed in {_elapsed(start):.3f}s")
            return result
        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.warning(f"{func.__name__} raised after {_elapsed(start):.3f}s: {e}")
            raise
        logger.debug(f"{func.__name__} completed in {_elapsed(start):.3f}s")
        return result
    return sync_wrapper


def log_api_call(operation: str):
    """Log start, outcome and duration of an async route handler"""
    def decorator(func):
        logger = get_logger(f"api.{func.__module__.rsplit('.', 1)[-1]}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            logger.debug(f"API {operation} started")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.info(
                    f"API {operation} ended with {type(e).__name__} after {_elapsed(start):.3f}s",
                    extra={"operation": operation},
                )
                raise
            logger.info(
                f"API {operation} completed in {_elapsed(start):.3f}s",
                extra={"operation": operation},
            )
            return result

        return wrapper
    return decorator


class PerformanceMonitor:
    """Times a block; warns when it runs longer than ``threshold_ms``"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.elapsed_ms: Optional[float] = None
        self._start = 0.0

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = _elapsed(self._start) * 1000
        if exc_type is not None:
            self.logger.warning(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation_name} took {self.elapsed_ms:.2f}ms (threshold {self.threshold_ms}ms)"
            )
        else:
            self.logger.debug(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
        return False
