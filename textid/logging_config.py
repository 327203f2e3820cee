"""
Centralized logging configuration for textid.

Library modules log through the standard ``logging`` hierarchy. This
module owns the root configuration:
- user-facing messages (``user_info`` and friends) for the CLI
- developer debug logs with module names
- optional rotating log file and JSON output
- performance and metrics records for training and evaluation runs
"""

import json
import logging
import logging.handlers
import sys
from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class LogLevel(Enum):
    """Logging levels with user-friendly names."""
    SILENT = "silent"      # Only critical errors
    MINIMAL = "minimal"    # Results and errors
    NORMAL = "normal"      # Standard user messages
    VERBOSE = "verbose"    # Adds performance and metrics lines
    DEBUG = "debug"        # Full debugging information
    TRACE = "trace"        # Debug including third-party libraries


_PYTHON_LEVELS = {
    LogLevel.SILENT: logging.CRITICAL,
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.VERBOSE: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.TRACE: logging.DEBUG,
}

# Chatty dependencies kept at WARNING unless tracing.
_NOISY_LOGGERS = ("chardet", "charset_normalizer", "langdetect", "joblib")

_RECORD_ATTRIBUTES = frozenset(logging.LogRecord(
    "", logging.INFO, "", 0, "", (), None
).__dict__) | {"message", "asctime"}


@dataclass
class LogConfig:
    """Configuration for logging behavior."""
    level: LogLevel = LogLevel.NORMAL
    console_output: bool = True
    file_output: bool = False
    log_file: Optional[Path] = None
    collect_performance: bool = True
    collect_metrics: bool = True
    format_json: bool = False
    include_module_names: bool = True
    max_file_size: str = "10MB"
    backup_count: int = 3

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = asdict(self)
        result['level'] = self.level.value
        if self.log_file:
            result['log_file'] = str(self.log_file)
        return result


class TextIdLogger:
    """Process-wide logging controller."""

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._initialized = True
        self.config = LogConfig()
        self.performance_logs: List[Dict[str, Any]] = []
        self.metrics_logs: List[Dict[str, Any]] = []
        self.session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._handlers: List[logging.Handler] = []

    def configure(self, config: Optional[LogConfig] = None, **kwargs) -> None:
        """
        Configure logging behavior.

        Args:
            config: LogConfig object with settings
            **kwargs: Individual config parameters overriding ``config``
        """
        base = config or self.config or LogConfig()
        known = {f.name for f in fields(LogConfig)}
        overrides = {}
        for key, value in kwargs.items():
            if key not in known:
                continue
            if key == 'level' and isinstance(value, str):
                value = LogLevel(value.lower())
            elif key == 'log_file' and value:
                value = Path(value)
            overrides[key] = value

        self.config = replace(base, **overrides)
        self._configure_logging()

    def _configure_logging(self) -> None:
        """Install handlers on the root logger for the current configuration."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

        level = _PYTHON_LEVELS.get(self.config.level, logging.INFO)
        root_logger.setLevel(level)

        formatter = JsonFormatter() if self.config.format_json else self._create_text_formatter()

        if self.config.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            console_handler.setLevel(level)
            self._handlers.append(console_handler)

        if self.config.file_output and self.config.log_file:
            try:
                self.config.log_file.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    self.config.log_file,
                    maxBytes=parse_size(self.config.max_file_size),
                    backupCount=self.config.backup_count,
                    encoding='utf-8'
                )
            except OSError as e:
                logging.getLogger(__name__).warning(f"Failed to set up file logging: {e}")
            else:
                file_handler.setFormatter(formatter)
                file_handler.setLevel(level)
                self._handlers.append(file_handler)

        for handler in self._handlers:
            root_logger.addHandler(handler)

        noisy_level = logging.DEBUG if self.config.level == LogLevel.TRACE else logging.WARNING
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(noisy_level)

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)

    def _user_logger(self) -> logging.Logger:
        return logging.getLogger('textid.user')

    def user_info(self, message: str, **kwargs) -> None:
        """Log user-facing informational message."""
        if self.config.level != LogLevel.SILENT:
            self._user_logger().info(f"📝 {message}", extra={'user_message': True, **kwargs})

    def user_success(self, message: str, **kwargs) -> None:
        """Log user-facing success message."""
        if self.config.level != LogLevel.SILENT:
            self._user_logger().info(f"✅ {message}", extra={'user_message': True, **kwargs})

    def user_warning(self, message: str, **kwargs) -> None:
        self._user_logger().warning(f"⚠️  {message}", extra={'user_message': True, **kwargs})

    def user_error(self, message: str, **kwargs) -> None:
        self._user_logger().error(f"❌ {message}", extra={'user_message': True, **kwargs})

    def debug_operation(self, operation: str, details: Dict[str, Any], **kwargs) -> None:
        """Log detailed operation information for debugging."""
        if self.config.level in (LogLevel.DEBUG, LogLevel.TRACE):
            logging.getLogger('textid.debug').debug(
                f"🔧 {operation}", extra={'operation': operation, 'details': details, **kwargs}
            )

    def performance_log(self, operation: str, duration: float, **kwargs) -> None:
        """Record how long an operation took."""
        if not self.config.collect_performance:
            return
        perf_data = {
            'timestamp': datetime.now().isoformat(),
            'operation': operation,
            'duration_seconds': duration,
            'session_id': self.session_id,
            **kwargs
        }
        self.performance_logs.append(perf_data)

        if self.config.level in (LogLevel.VERBOSE, LogLevel.DEBUG, LogLevel.TRACE):
            logging.getLogger('textid.performance').info(f"⏱️  {operation}: {duration:.3f}s", extra=perf_data)

    def metrics_log(self, metrics: Dict[str, Any], **kwargs) -> None:
        """Record quality metrics such as evaluation accuracy."""
        if not self.config.collect_metrics:
            return
        metrics_data = {
            'timestamp': datetime.now().isoformat(),
            'session_id': self.session_id,
            'metrics': metrics,
            **kwargs
        }
        self.metrics_logs.append(metrics_data)

        if self.config.level in (LogLevel.VERBOSE, LogLevel.DEBUG, LogLevel.TRACE):
            summary = ", ".join(f"{key}={value}" for key, value in metrics.items())
            logging.getLogger('textid.metrics').info(f"📊 {summary}", extra=metrics_data)

    def _create_text_formatter(self) -> logging.Formatter:
        """Create human-readable text formatter."""
        if self.config.level == LogLevel.MINIMAL:
            fmt = '%(message)s'
        elif self.config.include_module_names and self.config.level in (LogLevel.DEBUG, LogLevel.TRACE):
            fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        elif self.config.include_module_names:
            fmt = '%(asctime)s - %(levelname)s - %(message)s'
        else:
            fmt = '%(asctime)s - %(message)s'
        return logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')


def parse_size(size: Union[str, int]) -> int:
    """Parse a size such as '10MB' or '512K' to bytes, defaulting to 10MB."""
    if isinstance(size, int):
        return size

    text = size.strip().upper()
    for suffix, multiplier in (('GB', 1024**3), ('MB', 1024**2), ('KB', 1024), ('G', 1024**3),
                               ('M', 1024**2), ('K', 1024), ('B', 1)):
        if text.endswith(suffix):
            text, factor = text[:-len(suffix)], multiplier
            break
    else:
        factor = 1

    try:
        return int(float(text) * factor)
    except ValueError:
        return 10 * 1024**2


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging output."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'module': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line_number': record.lineno,
        }
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        log_data.update({
            key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRIBUTES
        })
        return json.dumps(log_data, default=str)


# Global logger instance
_logger = TextIdLogger()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger, the package logger when no name is given."""
    return _logger.get_logger(name or 'textid')


def configure_logging(level: Union[str, LogLevel] = LogLevel.NORMAL, **kwargs) -> None:
    """
    Configure library-wide logging.

    Args:
        level: Logging level
        **kwargs: Additional LogConfig fields
    """
    if isinstance(level, str):
        level = LogLevel(level.lower())
    _logger.configure(level=level, **kwargs)


def get_log_config() -> LogConfig:
    return _logger.config


def user_info(message: str, **kwargs) -> None:
    _logger.user_info(message, **kwargs)


def user_success(message: str, **kwargs) -> None:
    _logger.user_success(message, **kwargs)


def user_warning(message: str, **kwargs) -> None:
    _logger.user_warning(message, **kwargs)


def user_error(message: str, **kwargs) -> None:
    _logger.user_error(message, **kwargs)


def debug_operation(operation: str, details: Dict[str, Any], **kwargs) -> None:
    _logger.debug_operation(operation, details, **kwargs)


def performance_log(operation: str, duration: float, **kwargs) -> None:
    _logger.performance_log(operation, duration, **kwargs)


def metrics_log(metrics: Dict[str, Any], **kwargs) -> None:
    _logger.metrics_log(metrics, **kwargs)
