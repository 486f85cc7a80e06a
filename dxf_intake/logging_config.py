"""
Structured logging configuration for the dxf_intake package.

Provides:
- JSON formatter for machine-readable log output (one object per line)
- Console formatter for human-readable output
- Timing context manager and decorator for pipeline stages
- LogContext to tag every record of a run (e.g. with the file name)

Usage:
    from dxf_intake.logging_config import setup_logging, get_logger

    setup_logging(level=logging.INFO, json_file="dxf_intake.log.json")

    logger = get_logger(__name__)
    logger.info("Analysing DXF", extra={"file": "part.dxf", "size_kb": 84})
"""

import json
import logging
import sys
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar, Union

PACKAGE_LOGGER = "dxf_intake"

F = TypeVar("F", bound=Callable[..., Any])

# LogRecord attributes that are not user-supplied extra fields
_RESERVED_KEYS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'asctime', 'taskName',
})


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_KEYS}


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Output format:
        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "...", ...}
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Location only for debug and warning-or-worse
        if record.levelno >= logging.WARNING or record.levelno <= logging.DEBUG:
            log_entry["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            for key, value in _extra_fields(record).items():
                try:
                    json.dumps(value)
                    log_entry[key] = value
                except (TypeError, ValueError):
                    log_entry[key] = str(value)

        return json.dumps(log_entry, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with optional colors.

    Format: [TIME] LEVEL logger: message [extra_key=value ...]
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True, show_extra: bool = True):
        super().__init__()
        self.use_colors = use_colors
        self.show_extra = show_extra

    def _format_extra(self, record: logging.LogRecord) -> str:
        extras = []
        for key, value in _extra_fields(record).items():
            if isinstance(value, float):
                extras.append(f"{key}={value:.3g}")
            elif isinstance(value, (list, tuple)) and len(value) > 3:
                extras.append(f"{key}=[...{len(value)} items]")
            else:
                extras.append(f"{key}={value}")
        return " [" + ", ".join(extras) + "]" if extras else ""

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level_str = f"{self.COLORS[level]}{level:8}{self.COLORS['RESET']}"
        else:
            level_str = f"{level:8}"

        logger_name = record.name
        prefix = PACKAGE_LOGGER + "."
        if logger_name.startswith(prefix):
            logger_name = logger_name[len(prefix):]

        extra_str = self._format_extra(record) if self.show_extra else ""
        result = f"[{time_str}] {level_str} {logger_name}: {record.getMessage()}{extra_str}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def setup_logging(
    level: int = logging.INFO,
    json_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    use_colors: bool = True,
    root_logger: bool = False,
) -> logging.Logger:
    """Configure logging for the dxf_intake package.

    Args:
        level: Minimum log level (default INFO)
        json_file: Optional path for JSON log file
        console: Enable console output on stderr (default True)
        use_colors: Use ANSI colors in console (default True)
        root_logger: Configure root logger instead of dxf_intake

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("" if root_logger else PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
        logger.addHandler(console_handler)

    if json_file:
        json_handler = logging.FileHandler(Path(json_file), encoding='utf-8')
        json_handler.setLevel(level)
        json_handler.setFormatter(JSONFormatter())
        logger.addHandler(json_handler)

    if not root_logger:
        logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module (typically __name__)."""
    return logging.getLogger(name)


@contextmanager
def log_timing(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    **extra_fields: Any
):
    """Context manager to log operation timing.

    Example:
        with log_timing(logger, "Parsing ENTITIES", file=path):
            result = parse_entities(text)

    Yields:
        dict that can be updated with additional timing info
    """
    timing_info: Dict[str, Any] = {}
    start_time = time.perf_counter()

    logger.log(level, f"Starting: {operation}", extra={
        "event": "start",
        "operation": operation,
        **extra_fields
    })

    try:
        yield timing_info
    except Exception as e:
        elapsed = time.perf_counter() - start_time
        logger.error(f"Failed: {operation} ({elapsed:.3f}s) - {e}", extra={
            "event": "error",
            "operation": operation,
            "elapsed_seconds": elapsed,
            "error": str(e),
            **extra_fields
        })
        raise

    elapsed = time.perf_counter() - start_time
    timing_info['elapsed_seconds'] = elapsed
    logger.log(level, f"Completed: {operation} ({elapsed:.3f}s)", extra={
        "event": "complete",
        "operation": operation,
        **extra_fields,
        **timing_info
    })


def timed(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    operation: Optional[str] = None,
) -> Callable[[F], F]:
    """Decorator that runs the function inside log_timing.

    Args:
        logger: Logger instance (the function's module logger if None)
        level: Log level (default DEBUG)
        operation: Operation name (the function name if None)

    Example:
        @timed(operation="clean DXF export")
        def export_clean_dxf(entities, path):
            ...
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            func_logger = logger or logging.getLogger(func.__module__)
            with log_timing(func_logger, operation or func.__name__, level):
                return func(*args, **kwargs)

        return wrapper  # type: ignore
    return decorator


class LogContext:
    """Adds common fields to every record of the dxf_intake logger in a scope.

    Example:
        with LogContext(file="bracket.dxf"):
            metrics = parse(text)  # every record carries file=bracket.dxf
    """

    _local = threading.local()

    def __init__(self, **fields: Any):
        self.fields = fields
        self._previous: Optional['LogContext'] = None
        self._filter: Optional[logging.Filter] = None
        self._targets: list = []

    def __enter__(self) -> 'LogContext':
        self._previous = LogContext.current()
        LogContext._local.current = self

        fields = self.fields
        owner = threading.get_ident()

        class ContextFilter(logging.Filter):
            def filter(self, record: logging.LogRecord) -> bool:
                # Contexts of other threads leave the record alone
                if record.thread == owner:
                    for key, value in fields.items():
                        setattr(record, key, value)
                return True

        self._filter = ContextFilter()
        # Logger filters skip records from child loggers; handler filters do not
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        self._targets = [package_logger, *package_logger.handlers]
        for target in self._targets:
            target.addFilter(self._filter)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._filter:
            for target in self._targets:
                target.removeFilter(self._filter)
        LogContext._local.current = self._previous

    @classmethod
    def current(cls) -> Optional['LogContext']:
        return getattr(cls._local, "current", None)


def configure_default_logging(verbose: bool = False) -> logging.Logger:
    """Console logging at DEBUG (verbose) or INFO."""
    level = logging.DEBUG if verbose else logging.INFO
    return setup_logging(level=level, console=True, use_colors=True)
