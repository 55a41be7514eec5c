"""
Loguru sink setup for per-run session logs.

Context-specific headers and prefixed wrappers live in contexts/{context}/logger.py.
"""

import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}"
CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>"


def setup_session_sinks(log_file: Path, console_level: str = "INFO") -> Path:
    """
    Replace loguru's handlers with a DEBUG file sink and a console sink.

    The console sink writes to stderr so stdout stays machine-readable.

    Returns:
        Path to log file
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(exist_ok=True, parents=True)

    logger.remove()
    logger.add(log_file, format=FILE_FORMAT, level="DEBUG")
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=console_level, colorize=True)
    return log_file


def log_header(fields: dict) -> None:
    """Log a ruled block of "key: value" lines, skipping None values."""
    logger.info("=" * 80)
    for key, value in fields.items():
        if value is not None:
            logger.info(f"{key}: {value}")
    logger.info("=" * 80)
