"""Centralized logging configuration for pitch_accent.

Every logger in the package hangs below one of the sections listed in
MODULE_LOG_LEVELS. The sections own the console handler and their level;
module loggers underneath them propagate to it.
"""

import logging
import sys
from typing import Dict, Optional

# Log levels for the configured sections
MODULE_LOG_LEVELS = {
    "pitch_accent": logging.INFO,
    "pitch_accent.core": logging.INFO,
    # Per-frame output is logged at DEBUG
    "pitch_accent.detection": logging.INFO,
    "pitch_accent.scoring": logging.INFO,
    "pitch_accent.calibration": logging.INFO,
    "pitch_accent.audio": logging.INFO,
    "pitch_accent.cli": logging.INFO,
    # Libraries/third-party
    "soundfile": logging.ERROR,
    "sounddevice": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Shared console handler, created on first use
_console_handler: Optional[logging.Handler] = None

_logger_cache: Dict[str, logging.Logger] = {}


def _handler() -> logging.Handler:
    global _console_handler
    if _console_handler is None:
        # stdout is reserved for command output such as JSON
        _console_handler = logging.StreamHandler(sys.stderr)
        _console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return _console_handler


def _configure(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    handler = _handler()
    for existing in logger.handlers[:]:
        if existing is not handler:
            logger.removeHandler(existing)
    if handler not in logger.handlers:
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def _section_for(name: str) -> Optional[str]:
    """Nearest configured ancestor of a dotted logger name (root excluded)."""
    parts = name.split(".")
    while parts:
        candidate = ".".join(parts)
        if candidate in MODULE_LOG_LEVELS:
            return candidate
        parts.pop()
    return None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'pitch_accent' log levels with this level (e.g., "DEBUG").
    """
    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("pitch_accent"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    for module_name, module_level in log_levels.items():
        _configure(module_name, module_level)

    logging.getLogger("pitch_accent").debug("Logging configuration complete")


def get_logger(name: str) -> logging.Logger:
    """Get the logger for a module.

    Section loggers get the shared handler and their configured level on
    first use. Loggers of modules inside a section propagate to it.

    Args:
        name: The full module name (e.g., 'pitch_accent.scoring.dtw')

    Returns:
        A configured logger instance

    Raises:
        ValueError: If no section in MODULE_LOG_LEVELS covers the name
    """
    if name in _logger_cache:
        return _logger_cache[name]

    section = _section_for(name)
    if section is None:
        raise ValueError(
            f"Logger '{name}' is not covered by MODULE_LOG_LEVELS. "
            "Please add its package to the configuration."
        )

    section_logger = logging.getLogger(section)
    if _handler() not in section_logger.handlers:
        _configure(section, MODULE_LOG_LEVELS[section])

    logger = logging.getLogger(name)
    _logger_cache[name] = logger
    return logger
