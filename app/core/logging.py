import logging
import sys
from pathlib import Path

from pythonjsonlogger import jsonlogger

from app.core.config import Settings

LOGGER_NAME = "planeaciones"

logger = logging.getLogger(LOGGER_NAME)


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure application logging"""

    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # Already configured (app factory called more than once, e.g. in tests)
    if logger.handlers:
        return logger

    # Create logs directory if it doesn't exist
    log_dir = Path(settings.log_file).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    # Console handler (pretty format)
    console_handler = logging.StreamHandler(sys.stdout)
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(console_formatter)

    # File handler (JSON format for production)
    file_handler = logging.FileHandler(settings.log_file)
    json_formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s'
    )
    file_handler.setFormatter(json_formatter)

    # Add handlers
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    return logger
