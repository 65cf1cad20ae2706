import logging
from pathlib import Path
from typing import Union

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LOG_FILE = Path("logs") / "inbox_tasks.log"

# Third-party loggers that are noisy at INFO/WARNING during a refresh run.
QUIET_LOGGERS = {
    "googleapiclient.discovery_cache": logging.ERROR,
    "httpx": logging.WARNING,
    "filelock": logging.WARNING,
}


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_to_file: bool = False,
    log_file: Path = DEFAULT_LOG_FILE,
) -> None:
    """Configure root logging for the application (level may be a name such as "DEBUG")."""
    if isinstance(level, str):
        level = level.strip().upper()
    handlers = [logging.StreamHandler()]

    if log_to_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
