"""
Logging setup for the dsync command-line tools.
"""

import logging
import logging.handlers
from typing import Optional

from .config import LoggingConfig


def setup_logging(config: LoggingConfig, level: Optional[str] = None) -> None:
    """Configure the root logger from a LoggingConfig."""
    handlers = [logging.StreamHandler()]
    if config.file:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.file,
                maxBytes=config.max_size,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=level or config.level,
        format=config.format,
        handlers=handlers,
        force=True,
    )
