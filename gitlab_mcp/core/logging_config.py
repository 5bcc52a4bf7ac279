"""
Logging Configuration Module.

Centralized logging setup for gitlab_mcp.

Features:
- Configurable log level with per-module overrides
- Console logging, optional file logging
- Simple, detailed or JSON line formats

Nothing is configured on import; ``build_application`` calls ``setup_logging``
once at startup.
"""

import logging
import os
from pathlib import Path
from typing import Optional

SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"module": "%(filename)s", "function": "%(funcName)s", "line": %(lineno)d, '
    '"message": "%(message)s"}'
)

_FORMATS = {
    "simple": SIMPLE_FORMAT,
    "detailed": DETAILED_FORMAT,
    "json": JSON_FORMAT,
}

LOG_FILE_DIR = os.getenv("GITLAB_MCP_LOG_DIR", "logs")

# Module-specific log levels
MODULE_LOG_LEVELS = {
    "gitlab_mcp.capabilities": "INFO",
    "gitlab_mcp.policy": "INFO",
    "gitlab_mcp.introspection": "INFO",
    "gitlab_mcp.session": "INFO",
    "gitlab_mcp.providers": "INFO",
    # Third-party libraries (reduce noise)
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "asyncio": "WARNING",
}


def resolve_format(log_format: Optional[str]) -> str:
    """Map a format name to its format string, defaulting to the detailed one."""
    return _FORMATS.get((log_format or "detailed").lower(), DETAILED_FORMAT)


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: bool = False,
) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Override default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Override default format (simple, detailed, json)
        enable_file: Whether to also write ``gitlab_mcp.log`` under ``LOG_FILE_DIR``
    """
    level = (log_level or os.getenv("GITLAB_MCP_LOG_LEVEL", "INFO")).upper()
    fmt = log_format or os.getenv("GITLAB_MCP_LOG_FORMAT", "detailed")

    formatter = logging.Formatter(resolve_format(fmt), datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # filter at handler level

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if enable_file:
        Path(LOG_FILE_DIR).mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(Path(LOG_FILE_DIR) / "gitlab_mcp.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        # a DEBUG root request should reach package loggers too
        if module_name.startswith("gitlab_mcp") and level == "DEBUG":
            module_level = "DEBUG"
        logging.getLogger(module_name).setLevel(module_level)

    root_logger.info(f"Logging configured: level={level}, format={fmt}, file_logging={enable_file}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The module name (typically __name__)

    Returns:
        A configured logger instance
    """
    return logging.getLogger(name)
