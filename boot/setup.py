"""
boot/setup.py - Configuration and Environment Setup

This module handles:
- Loading environment variables (.env via python-dotenv)
- Building the AgentConfig
- Configuring logging

Responsibilities:
- Find and load .env files
- Parse AGENT_* environment variables
- Initialize logging

Rules:
- No business logic
- Only configuration loading
- Fail fast if a value is malformed
- Real environment variables win over .env entries
"""

import os
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from core.types import AgentConfig, DEFAULT_ALLOWED_EXTENSIONS, DEFAULT_MAX_FILE_SIZE

TRUE_VALUES = ("true", "1", "yes", "on")


def get_project_root() -> Path:
    """Get the project root directory."""
    # Assume boot/ is at project root
    return Path(__file__).parent.parent


def load_env_file(env_path: Optional[Path] = None) -> None:
    """Load environment variables from a .env file.

    Args:
        env_path: Path to .env file. If None, searches in project root.
    """
    if env_path is None:
        env_path = get_project_root() / ".env"

    if not env_path.exists():
        return

    load_dotenv(env_path, override=False)


def env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in TRUE_VALUES


def env_int(name: str, default: int) -> int:
    """Read an integer variable.

    Raises:
        ValueError: If the variable is set but is not an integer
    """
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def load_config(env_path: Optional[Path] = None) -> AgentConfig:
    """Load agent configuration from the environment.

    Args:
        env_path: Optional .env file to load first

    Returns:
        AgentConfig built from AGENT_* variables

    Raises:
        ValueError: If a numeric variable is malformed
    """
    load_env_file(env_path)

    extensions = os.getenv("AGENT_ALLOWED_EXTENSIONS")
    if extensions and extensions.strip():
        allowed_extensions = frozenset(
            ext.strip() for ext in extensions.split(",") if ext.strip()
        )
    else:
        allowed_extensions = frozenset(DEFAULT_ALLOWED_EXTENSIONS)

    working_directory = os.getenv("AGENT_WORKING_DIRECTORY") or os.getcwd()

    return AgentConfig(
        enabled=env_bool("AGENT_ENABLED", False),
        allowed_extensions=allowed_extensions,
        max_file_size=env_int("AGENT_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
        working_directory=Path(working_directory),
        auto_backup=env_bool("AGENT_AUTO_BACKUP", True),
        dry_run_mode=env_bool("AGENT_DRY_RUN", False),
    )


CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    level: Optional[str] = None,
    session_id: Optional[str] = None,
    logs_dir: Optional[Path] = None,
) -> str:
    """Send INFO+ to the console and everything, trace lines included, to a session log.

    Returns:
        Path to the session log file
    """
    level_name = (level or os.getenv("AGENT_LOG_LEVEL", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    logs_dir = logs_dir or get_project_root() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    suffix = f"_{session_id[:8]}" if session_id else ""
    log_path = logs_dir / f"session_{datetime.now():%Y%m%d_%H%M%S}{suffix}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(_handler(logging.StreamHandler(), console_level, CONSOLE_FORMAT))
    root_logger.addHandler(
        _handler(logging.FileHandler(log_path, encoding="utf-8"), logging.DEBUG, FILE_FORMAT)
    )

    logging.info(f"Session log started: {log_path}")
    return str(log_path)
