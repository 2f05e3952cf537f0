"""
Logging setup using Loguru.
"""

import sys
from pathlib import Path

from loguru import logger

from .config import LoggingConfig

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}"


def get_log_file(config: LoggingConfig, data_dir: Path) -> Path:
    if config.log_file:
        return Path(config.log_file).expanduser()
    return data_dir / "media-radio.log"


def setup_loguru(config: LoggingConfig, data_dir: Path) -> Path:
    """
    Configure loguru with a rotating file sink and optional stderr output.

    Args:
        config: Logging section of the app configuration
        data_dir: Fallback directory for the log file

    Returns:
        Path of the log file in use
    """
    log_file = get_log_file(config, data_dir)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation=f"{config.max_file_size_mb} MB",
        retention=config.backup_count,
        level=config.level,
        format=LOG_FORMAT,
        enqueue=False,  # Synchronous writes (thread-safe but blocking)
    )

    if config.console_output:
        logger.add(sys.stderr, level=config.level, format=LOG_FORMAT)

    logger.info(f"Loguru initialized: {log_file} (level={config.level})")
    return log_file
