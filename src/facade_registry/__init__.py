"""
facade_registry - runtime registry of the rpc methods exposed by facade modules.

The registry gates a configured, ordered set of facade classes against the
host's platform (SDK) level, collects the rpc metadata each facade declares
and indexes it by method name and by start/stop event name.

This module also owns the package-wide Loguru configuration so every
submodule can simply ``from facade_registry import logger``.
"""

__version__ = "0.1.0"

import sys
import os
from pathlib import Path
from typing import Optional, Dict, Union, TextIO
from loguru import logger
import warnings


# --- Logger Configuration ---

class LoggingConfigError(Exception):
    """Raised when logging configuration fails validation or setup."""
    pass


class LoggerState:
    """Tracks the sinks this package added so they can be removed again."""

    def __init__(self):
        self._initialized = False
        self._test_mode = False
        self._sink_ids = []

    def is_initialized(self) -> bool:
        return self._initialized

    def is_test_mode(self) -> bool:
        return self._test_mode

    def mark_initialized(self, test_mode: bool = False):
        self._initialized = True
        self._test_mode = test_mode

    def add_sink_id(self, sink_id: int):
        self._sink_ids.append(sink_id)

    def reset(self):
        self._initialized = False
        self._test_mode = False
        self._sink_ids.clear()


_logger_state = LoggerState()

_VALID_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def validate_log_level(level: str) -> str:
    """
    Validate a Loguru level name.

    Args:
        level: Log level string to validate

    Returns:
        Upper-cased level name

    Raises:
        LoggingConfigError: If the level is unknown
    """
    level_upper = level.upper()
    if level_upper not in _VALID_LEVELS:
        raise LoggingConfigError(
            f"Invalid log level '{level}'. Must be one of: {', '.join(sorted(_VALID_LEVELS))}"
        )
    return level_upper


def configure_console_logging(
    level: str = "INFO",
    format_template: Optional[str] = None,
    colorize: bool = True,
    destination: TextIO = sys.stderr
) -> int:
    """
    Add a console sink.

    Returns:
        Sink ID for tracking and cleanup

    Raises:
        LoggingConfigError: If configuration fails
    """
    try:
        validated_level = validate_log_level(level)

        if format_template is None:
            format_template = (
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
            )

        sink_id = logger.add(
            destination,
            level=validated_level,
            format=format_template,
            colorize=colorize
        )

        _logger_state.add_sink_id(sink_id)
        return sink_id

    except Exception as e:
        raise LoggingConfigError(f"Failed to configure console logging: {e}") from e


def configure_file_logging(
    log_file_path: Union[str, Path],
    level: str = "DEBUG",
    rotation: str = "10 MB",
    retention: str = "7 days",
    compression: str = "zip",
    encoding: str = "utf-8",
) -> int:
    """
    Add a rotating file sink, creating the parent directory when needed.

    Returns:
        Sink ID for tracking and cleanup

    Raises:
        LoggingConfigError: If configuration fails
    """
    try:
        validated_level = validate_log_level(level)
        path = Path(log_file_path)
        _ensure_log_directory(path.parent)

        sink_id = logger.add(
            str(path),
            rotation=rotation,
            retention=retention,
            compression=compression,
            level=validated_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
            encoding=encoding
        )

        _logger_state.add_sink_id(sink_id)
        return sink_id

    except Exception as e:
        raise LoggingConfigError(f"Failed to configure file logging: {e}") from e


def _get_default_log_directory() -> Path:
    return Path.home() / ".facade_registry" / "logs"


def _ensure_log_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def configure_test_logging(
    console_level: str = "DEBUG",
    console_destination: Optional[TextIO] = None,
) -> Dict[str, int]:
    """
    Reset all sinks and install a single uncolored console sink for tests.

    Returns:
        Dictionary mapping sink types to sink IDs
    """
    reset_logger()
    sink_ids = {
        'console': configure_console_logging(
            level=console_level,
            destination=console_destination if console_destination is not None else sys.stderr,
            colorize=False,
        )
    }
    _logger_state.mark_initialized(test_mode=True)
    return sink_ids


def reset_logger() -> None:
    """
    Remove every Loguru sink and forget the tracked state.

    Raises:
        LoggingConfigError: If reset fails
    """
    try:
        logger.remove()
        _logger_state.reset()
    except Exception as e:
        raise LoggingConfigError(f"Failed to reset logging configuration: {e}") from e


def initialize_logger(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_dir: Optional[Union[str, Path]] = None,
) -> Dict[str, int]:
    """
    Install the production console and file sinks.

    Args:
        console_level: Console logging level
        file_level: File logging level
        log_dir: Directory for log files (``~/.facade_registry/logs`` if None)

    Returns:
        Dictionary mapping sink types to sink IDs

    Raises:
        LoggingConfigError: If initialization fails
    """
    logger.remove()

    sink_ids = {'console': configure_console_logging(level=console_level)}

    log_dir = Path(log_dir) if log_dir is not None else _get_default_log_directory()
    sink_ids['file'] = configure_file_logging(
        log_file_path=log_dir / "facade_registry_{time:YYYYMMDD}.log",
        level=file_level,
    )

    _logger_state.mark_initialized(test_mode=False)
    logger.info("--- facade_registry logger initialized ---")
    return sink_ids


def get_logger_state() -> LoggerState:
    return _logger_state


def is_logging_initialized() -> bool:
    return _logger_state.is_initialized()


def _is_pytest_running() -> bool:
    return "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ


def _auto_initialize_logging():
    if not _logger_state.is_initialized() and not _is_pytest_running():
        try:
            initialize_logger()
        except LoggingConfigError as e:
            # Fall back to basic stderr logging if the file sink cannot be created
            warnings.warn(f"Failed to initialize logging: {e}. Using basic stderr logging.")
            logger.add(sys.stderr, level="INFO")
            _logger_state.mark_initialized(test_mode=False)


_auto_initialize_logging()

# --- End Logger Configuration ---

from facade_registry.exceptions import (  # noqa: E402
    FacadeRegistryError,
    ConfigError,
    RegistryError,
    IntrospectionError,
    DuplicateMethodError,
    DuplicateEventBindingError,
)
from facade_registry.rpc import (  # noqa: E402
    RpcParameter,
    RpcEntry,
    RpcReceiver,
    MethodDescriptor,
    rpc,
    collect_from,
)
from facade_registry.config import FacadeEntry, RegistryConfig, load_config  # noqa: E402
from facade_registry.gating import (  # noqa: E402
    resolve_sdk_level,
    is_facade_enabled,
    assemble_facade_set,
)
from facade_registry.registry import (  # noqa: E402
    CollisionPolicy,
    FacadeRegistry,
    LazyRegistry,
    build_method_index,
    build_event_index,
    build_registry,
)

__all__ = [
    "__version__",
    "logger",
    "initialize_logger",
    "reset_logger",
    "configure_test_logging",
    "FacadeRegistryError",
    "ConfigError",
    "RegistryError",
    "IntrospectionError",
    "DuplicateMethodError",
    "DuplicateEventBindingError",
    "RpcParameter",
    "RpcEntry",
    "RpcReceiver",
    "MethodDescriptor",
    "rpc",
    "collect_from",
    "FacadeEntry",
    "RegistryConfig",
    "load_config",
    "resolve_sdk_level",
    "is_facade_enabled",
    "assemble_facade_set",
    "CollisionPolicy",
    "FacadeRegistry",
    "LazyRegistry",
    "build_method_index",
    "build_event_index",
    "build_registry",
]
