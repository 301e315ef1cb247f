from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from core.config import Settings


_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def setup_logging(settings: Settings) -> None:
    """Configure the root logger once per process.

    Development logs to the console at DEBUG. Production logs at INFO to the
    console and to a rotating file under `settings.log_dir`. `LOG_LEVEL`
    overrides either default.
    """

    root = logging.getLogger()
    if root.handlers:
        return

    default_level = "INFO" if settings.is_production else "DEBUG"
    level = logging.getLevelName(settings.log_level or default_level)
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if settings.is_production:
        logs_dir = Path(settings.log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "scheduling.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers)

    # SQL echo is far too chatty at DEBUG.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
