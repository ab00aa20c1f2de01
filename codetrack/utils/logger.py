import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from codetrack.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def log_file_path(log_dir: Optional[str] = None) -> Path:
    """Daily log file under ``log_dir`` (defaults to Config.LOG_DIR)."""
    directory = Path(log_dir or Config.LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    return directory / f'codetrack_{datetime.now().strftime("%Y%m%d")}.log'


def setup_logger(name: str, log_dir: Optional[str] = None) -> logging.Logger:
    """Setup a logger writing to stdout and the daily CodeTrack log file"""

    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    # Console follows DEBUG; the file always keeps debug detail
    console_level = logging.DEBUG if Config.DEBUG else logging.INFO
    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_file_path(log_dir), encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger
