"""
Minimal structured logging configuration for lot_costing.

Provides:
- File logging for warnings and errors (skipped movements, shortfalls)
- Console logging for critical errors only
- Automatic log rotation
"""
import logging
import logging.handlers
from datetime import date
from pathlib import Path
from typing import Optional, Union


def setup_logging(
    log_dir: Optional[Union[str, Path]] = None,
    app_name: str = "lot_costing",
    file_level: int = logging.WARNING,
) -> logging.Logger:
    """
    Setup structured logging with file output.

    Args:
        log_dir: Directory for log files (created if missing). Defaults to
                 ./logs under the current working directory.
        app_name: Logger name; module loggers under lot_costing.* propagate to it
        file_level: Minimum level written to the log file

    Returns:
        Configured logger instance
    """
    log_path = Path(log_dir) if log_dir is not None else Path.cwd() / "logs"
    log_path.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(app_name)
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    # File handler: rotating log (max 5MB, keep 3 backups)
    log_file = log_path / f"{app_name}_{date.today().strftime('%Y%m%d')}.log"
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(file_handler)

    # Console handler: critical errors only
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.CRITICAL)
    console_handler.setFormatter(logging.Formatter("CRITICAL: %(message)s"))
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str = "lot_costing") -> logging.Logger:
    """Get a logger under the lot_costing hierarchy."""
    return logging.getLogger(name)
