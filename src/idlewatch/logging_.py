import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from idlewatch.config import log_path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> Path:
    """
    Send log records to a rotating file.

    No console handler is installed: the terminal belongs to the UI.
    Calling this again only adjusts the level.
    """
    log_file = log_file or log_path()
    root = logging.getLogger()
    root.setLevel(level)

    if any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        return log_file

    log_file.parent.mkdir(parents=True, exist_ok=True)
    fh = RotatingFileHandler(str(log_file), maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(fh)
    return log_file
