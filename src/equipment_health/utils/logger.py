"""
Logger Utility Module
Provides centralized logging configuration for the Equipment Health Predictor
"""

import logging
import logging.handlers
import sys
import threading
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Optional

import colorlog

from equipment_health.config.settings import LoggingConfig

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(device_id)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Thread-local storage for context
context = threading.local()


class ContextFilter(logging.Filter):
    """Add contextual information to log records"""

    def filter(self, record):
        """Add context data to log record"""
        record.device_id = getattr(context, 'device_id', '-')
        record.tick_id = getattr(context, 'tick_id', '-')

        if hasattr(context, 'extra'):
            for key, value in context.extra.items():
                setattr(record, key, value)

        return True


def _create_console_handler(config: LoggingConfig) -> logging.Handler:
    """Create console handler with optional color support"""
    console_handler = logging.StreamHandler(sys.stdout)

    if config.enable_color:
        formatter = colorlog.ColoredFormatter(
            '%(log_color)s' + DEFAULT_FORMAT + '%(reset)s',
            datefmt=DATE_FORMAT,
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )
    else:
        formatter = logging.Formatter(DEFAULT_FORMAT, datefmt=DATE_FORMAT)

    console_handler.setFormatter(formatter)
    return console_handler


def _create_file_handler(config: LoggingConfig) -> logging.Handler:
    """Create rotating file handler"""
    log_file = Path(config.file_path)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count
    )
    file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DATE_FORMAT))
    return file_handler


def setup_logging(config: Optional[LoggingConfig] = None):
    """Setup root logger configuration

    Args:
        config: Logging configuration, defaults apply when omitted
    """
    config = config or LoggingConfig()
    level = getattr(logging, config.level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    context_filter = ContextFilter()

    if config.enable_console:
        console_handler = _create_console_handler(config)
        console_handler.addFilter(context_filter)
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

    if config.enable_file:
        file_handler = _create_file_handler(config)
        file_handler.addFilter(context_filter)
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

    # TensorFlow is chatty at INFO
    logging.getLogger('tensorflow').setLevel(max(level, logging.WARNING))


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name or 'equipment_health')


def set_device_id(device_id: Optional[str]):
    """Set device ID for log tracking"""
    context.device_id = device_id or '-'


def clear_context():
    """Clear contextual information"""
    context.device_id = '-'
    context.tick_id = '-'
    if hasattr(context, 'extra'):
        context.extra.clear()


class LogContext:
    """Context manager for temporary log context"""

    def __init__(self, device_id: Optional[str] = None, tick_id: Optional[str] = None, **kwargs):
        self.device_id = device_id
        self.tick_id = tick_id
        self.extra = kwargs
        self._previous = {}

    def __enter__(self):
        self._previous = {
            'device_id': getattr(context, 'device_id', '-'),
            'tick_id': getattr(context, 'tick_id', '-'),
            'extra': dict(getattr(context, 'extra', {})),
        }
        if self.device_id is not None:
            context.device_id = self.device_id
        if self.tick_id is not None:
            context.tick_id = self.tick_id
        if self.extra:
            if not hasattr(context, 'extra'):
                context.extra = {}
            context.extra.update(self.extra)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        context.device_id = self._previous['device_id']
        context.tick_id = self._previous['tick_id']
        context.extra = self._previous['extra']
        return False


def log_execution_time(func):
    """Decorator to log function execution time

    Args:
        func: Function to decorate

    Returns:
        Decorated function
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = datetime.now()

        try:
            logger.debug(f"Starting {func.__name__}")
            result = func(*args, **kwargs)
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.info(f"{func.__name__} completed in {execution_time:.3f} seconds")
            return result

        except Exception as e:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(f"{func.__name__} failed after {execution_time:.3f} seconds: {str(e)}")
            raise

    return wrapper
