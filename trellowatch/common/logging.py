import logging
import sys
from datetime import datetime
from pathlib import Path

from trellowatch.config import settings

ROOT_LOGGER = "trellowatch"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(log_dir: str | None = None) -> Path | None:
    """Configure the ``trellowatch`` logger hierarchy.

    Logs go to stderr and, when a log directory is configured, to a fresh
    ``log_<timestamp>.log`` file in it. Returns the log file path, if any.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(settings.LOG_LEVEL.upper())
    root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    directory = log_dir if log_dir is not None else settings.LOG_DIR
    if not directory:
        return None

    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    log_file = path / f"log_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    root.info("Logging to file: %s", log_file)
    return log_file
