# tree_ensemble/utils/logger.py
"""Logging utilities for tree_ensemble package.

Centralized logging configuration: one package root logger
(``tree_ensemble``), a structured formatter, optional rotating log files
and a performance adapter used to time boosting rounds.
"""

import logging
import logging.handlers
import sys
import json
import time
from pathlib import Path
from typing import Optional, Dict, Any, Union
from datetime import datetime
import threading

from .exceptions import FileOperationError

ROOT_LOGGER_NAME = 'tree_ensemble'


class TreeEnsembleFormatter(logging.Formatter):
    """Formatter for tree_ensemble logs.

    Renders timestamp, level, logger name and message, followed by the
    optional ``context`` and ``duration`` fields callers attach through
    ``extra``.
    """

    def __init__(self, include_context: bool = True) -> None:
        """Initialize formatter.

        Args:
            include_context: Whether to include context fields in output
        """
        self.include_context = include_context
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with tree_ensemble structure.

        Args:
            record: Log record to format

        Returns:
            Formatted log string
        """
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        message = record.getMessage()

        context_str = ""
        if self.include_context and hasattr(record, 'context'):
            context_str = f" | Context: {json.dumps(record.context, default=str)}"

        perf_str = ""
        if hasattr(record, 'duration'):
            perf_str = f" | Duration: {record.duration:.3f}s"

        formatted = f"[{timestamp}] {record.levelname:8s} | {record.name:24s} | {message}{context_str}{perf_str}"
        if record.exc_info:
            formatted = f"{formatted}\n{self.formatException(record.exc_info)}"
        return formatted


class PerformanceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter with named timers for boosting rounds.

    The training loop times every round with ``start_timer`` /
    ``stop_timer`` and emits the per-round evaluation line through
    ``log_evaluation``, which carries the round index and the duration of
    the last timed round.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(logger, extra or {})
        self._timers: Dict[str, float] = {}
        self.last_duration: Optional[float] = None

    def process(self, msg: Any, kwargs: Any):
        # Keep per-call extra fields instead of replacing them with self.extra
        extra = dict(self.extra)
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = extra
        return msg, kwargs

    def start_timer(self, name: str) -> None:
        self._timers[name] = time.perf_counter()
        self.debug(f"Timer '{name}' started", extra={'context': {'timer_action': 'start', 'timer_name': name}})

    def stop_timer(self, name: str, level: int = logging.INFO) -> float:
        """Stop a named timer.

        Args:
            name: Timer started with ``start_timer``
            level: Level of the completion record

        Returns:
            Elapsed seconds

        Raises:
            ValueError: If the timer was never started
        """
        started = self._timers.pop(name, None)
        if started is None:
            raise ValueError(f"Timer '{name}' was not started")

        self.last_duration = time.perf_counter() - started
        self.log(level, f"Timer '{name}' completed", extra={
            'context': {'timer_action': 'stop', 'timer_name': name},
            'duration': self.last_duration
        })
        return self.last_duration

    def log_evaluation(self, iteration: int, line: str, level: int = logging.INFO) -> None:
        """Log one ``[i]\\tname-metric:score`` evaluation line."""
        extra: Dict[str, Any] = {'context': {'round': iteration}}
        if self.last_duration is not None:
            extra['duration'] = self.last_duration
        self.log(level, line, extra=extra)


class TreeEnsembleLogger:
    """Centralized logger management for tree_ensemble package."""

    _loggers: Dict[str, logging.Logger] = {}
    _configured: bool = False
    _lock = threading.Lock()

    @classmethod
    def configure(
        cls,
        level: Union[str, int] = logging.INFO,
        log_file: Optional[Union[str, Path]] = None,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        format_style: str = "detailed",
        include_console: bool = True
    ) -> None:
        """Configure package-wide logging settings.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional log file path
            max_file_size: Maximum log file size before rotation
            backup_count: Number of backup files to keep
            format_style: Formatting style ('simple' or 'detailed')
            include_console: Whether to include console output
        """
        with cls._lock:
            if cls._configured:
                return

            if isinstance(level, str):
                level = getattr(logging, level.upper())

            root_logger = logging.getLogger(ROOT_LOGGER_NAME)
            root_logger.setLevel(level)
            root_logger.handlers.clear()

            formatter = TreeEnsembleFormatter(include_context=format_style == "detailed")

            if include_console:
                console_handler = logging.StreamHandler(sys.stdout)
                console_handler.setLevel(level)
                console_handler.setFormatter(formatter)
                root_logger.addHandler(console_handler)

            if log_file:
                try:
                    log_path = Path(log_file)
                    log_path.parent.mkdir(parents=True, exist_ok=True)

                    file_handler = logging.handlers.RotatingFileHandler(
                        log_path,
                        maxBytes=max_file_size,
                        backupCount=backup_count,
                        encoding='utf-8'
                    )
                    file_handler.setLevel(level)
                    file_handler.setFormatter(formatter)
                    root_logger.addHandler(file_handler)

                except OSError as e:
                    raise FileOperationError(
                        f"Failed to create log file handler: {log_file}",
                        error_code="LOG_FILE_SETUP_FAILED",
                        context={'log_file': str(log_file), 'error': str(e)}
                    ) from e

            cls._configured = True

    @classmethod
    def get_logger(
        cls,
        name: str,
        with_performance: bool = False
    ) -> Union[logging.Logger, PerformanceLoggerAdapter]:
        """Get a logger instance for the specified module.

        Args:
            name: Logger name (typically __name__)
            with_performance: Whether to return performance-enhanced logger

        Returns:
            Logger instance, optionally with performance tracking
        """
        if not cls._configured:
            cls.configure()

        # Everything hangs off the package root logger
        if not name.startswith(ROOT_LOGGER_NAME):
            if name == '__main__':
                name = f'{ROOT_LOGGER_NAME}.main'
            else:
                name = f'{ROOT_LOGGER_NAME}.{name.split(".")[-1]}'

        logger = cls._loggers.get(name)
        if logger is None:
            logger = logging.getLogger(name)
            cls._loggers[name] = logger

        if with_performance:
            return PerformanceLoggerAdapter(logger)

        return logger

    @classmethod
    def set_level(cls, level: Union[str, int]) -> None:
        """Change logging level for all package loggers.

        Args:
            level: New logging level
        """
        if isinstance(level, str):
            level = getattr(logging, level.upper())

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(level)

        for handler in root_logger.handlers:
            handler.setLevel(level)


def get_logger(name: str, with_performance: bool = False) -> Union[logging.Logger, PerformanceLoggerAdapter]:
    """Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__)
        with_performance: Whether to return performance-enhanced logger

    Returns:
        Logger instance, optionally with performance tracking

    Example:
        >>> from tree_ensemble.utils.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Boosting started")
    """
    return TreeEnsembleLogger.get_logger(name, with_performance)


def configure_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    **kwargs: Any
) -> None:
    """Configure package-wide logging settings.

    Args:
        level: Logging level
        log_file: Optional log file path
        **kwargs: Additional configuration options

    Example:
        >>> from tree_ensemble.utils.logger import configure_logging
        >>> configure_logging(level="DEBUG", log_file="logs/tree_ensemble.log")
    """
    TreeEnsembleLogger.configure(level=level, log_file=log_file, **kwargs)


def set_log_level(level: Union[str, int]) -> None:
    """Change logging level for all package loggers."""
    TreeEnsembleLogger.set_level(level)


class temporary_log_level:
    """Context manager for temporary log level changes.

    Example:
        >>> with temporary_log_level("DEBUG"):
        ...     train(params, dtrain, 10, evals=[(dtest, "test")])
    """

    def __init__(self, level: Union[str, int]) -> None:
        if isinstance(level, str):
            level = getattr(logging, level.upper())
        self.temp_level = level
        self.original_level: Optional[int] = None

    def __enter__(self) -> None:
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.original_level = root_logger.level
        TreeEnsembleLogger.set_level(self.temp_level)

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_level is not None:
            TreeEnsembleLogger.set_level(self.original_level)
