import logging
from pathlib import Path

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# chatty per-request loggers from the client stack
_QUIET = ("httpx", "httpcore", "passlib", "websockets")


def _resolve_log_file(log_file) -> Path:
    logs_dir = Path(__file__).resolve().parent / "logs"
    path = Path(log_file or settings.LOG_FILE)
    if not path.is_absolute():
        path = logs_dir / path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def configure_logging(log_file: str | None = None, level: str | int | None = None, console: bool = False):
    """Route platform and client logs to one file.

    ``log_file`` defaults to LOG_FILE (relative names land in ``ridelink/logs``)
    and ``level`` to LOG_LEVEL. With ``console`` the same records also go to
    stderr, which is what ``python -m ridelink.main`` wants.
    """
    level = level or settings.LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handlers = [logging.FileHandler(_resolve_log_file(log_file))]
    if console:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S", handlers=handlers)
    for name in _QUIET:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``ridelink`` tree whatever module path it was imported by."""
    if not name.startswith("ridelink"):
        name = f"ridelink.{name.rsplit('.', 1)[-1]}"
    return logging.getLogger(name)
