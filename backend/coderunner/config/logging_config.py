"""
Logging Configuration Module

Provides centralized logging configuration with file and console handlers.
"""

import functools
import inspect
import logging
import os
from logging.handlers import TimedRotatingFileHandler

from .settings import LoggingSettings

# Define log format strings
FILE_FORMATTER = '%(asctime)s.%(msecs)03d | %(levelname)-7s | [PID:%(process)d/TID:%(thread)d] | %(filename)s.%(funcName)s:%(lineno)d | %(message)s'
CONSOLE_FORMATTER = '%(asctime)s.%(msecs)03d | \033[1m%(levelname)-7s\033[0m | [PID:%(process)d/TID:%(threadName)s] | %(filename)s.%(funcName)s:%(lineno)d | \033[36m%(message)s\033[0m'

# Longest rendering of a single argument or return value in log_print output
MAX_LOGGED_VALUE = 300


class LoggingConfig:
    """Logging configuration management"""

    def __init__(self, log_file_name=None, log_level=None, backup_count=None, log_dir=None):
        self.log_file_name = log_file_name or LoggingSettings.FILE_NAME
        self.log_level = log_level or getattr(logging, LoggingSettings.LEVEL, logging.INFO)
        self.backup_count = backup_count if backup_count is not None else LoggingSettings.BACKUP_COUNT
        self.log_dir = log_dir or LoggingSettings.DIR
        self.logger = logging.getLogger()

    def setup_logging(self):
        """Setup logging with file and console handlers"""
        # Clear existing handlers to avoid duplicates
        self.logger.handlers.clear()
        self.logger.setLevel(self.log_level)

        if self.log_dir is None:
            root_dir = os.path.dirname(os.path.abspath(__file__))
            self.log_dir = os.path.join(root_dir, "../../logs")

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMATTER))
        self.logger.addHandler(console_handler)

        try:
            os.makedirs(self.log_dir, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Failed to create log directory {self.log_dir}: {e}; logging to console only")
            return self.logger

        # Daily rotation
        file_handler = TimedRotatingFileHandler(
            os.path.join(self.log_dir, f'{self.log_file_name}.log'),
            when='D',
            interval=1,
            backupCount=self.backup_count,
            encoding='utf-8',
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMATTER))
        self.logger.addHandler(file_handler)

        # Docker SDK and urllib3 are chatty at DEBUG
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("docker").setLevel(logging.WARNING)

        self.logger.info("Logging initialized successfully")
        return self.logger


def _shorten(value, max_length=MAX_LOGGED_VALUE) -> str:
    """Render a value for the log without flooding it (submitted code can be large)."""
    if hasattr(value, "model_dump") and callable(value.model_dump):
        value = value.model_dump()
    try:
        text = repr(value)
    except Exception:
        return f"<{type(value).__name__} object (repr_error)>"
    if len(text) > max_length:
        return f"{text[:max_length]}... ({len(text)} chars)"
    return text


def log_print(func):
    """Decorator for logging function calls and return values (supports sync/async)"""

    try:
        param_names = list(inspect.signature(func).parameters.keys())
    except (TypeError, ValueError):
        param_names = []

    # Skip the bound instance for methods
    skip = 1 if param_names[:1] in (["self"], ["cls"]) else 0
    logger = logging.getLogger(func.__module__)

    def _describe(args, kwargs) -> str:
        params = []
        for index, arg in enumerate(args[skip:], start=skip):
            name = param_names[index] if index < len(param_names) else f"arg{index}"
            params.append(f"{name}={_shorten(arg)}")
        params.extend(f"{k}={_shorten(v)}" for k, v in kwargs.items())
        return ', '.join(params) if params else '(no args)'

    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs):
        logger.info(f"[Call] {func.__qualname__} ←------------ Args: {_describe(args, kwargs)}")
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.error(f"[Exception] {func.__qualname__} ! {e.__class__.__name__}: {e}", exc_info=True)
            raise
        logger.info(f"[Return] {func.__qualname__} ------------→ Result: {_shorten(result)}")
        return result

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        logger.info(f"[Call] {func.__qualname__} ←------------ Args: {_describe(args, kwargs)}")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"[Exception] {func.__qualname__} ! {e.__class__.__name__}: {e}", exc_info=True)
            raise
        logger.info(f"[Return] {func.__qualname__} ------------→ Result: {_shorten(result)}")
        return result

    return async_wrapper if inspect.iscoroutinefunction(func) else sync_wrapper
