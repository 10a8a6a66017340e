"""
Logging setup for the PetSitters API.

Services log through ``logging.getLogger(__name__)``; this module wires
the root logger once per process.  ``LOG_LEVEL`` picks the level and
``LOG_FILE``, when set, adds a UTF-8 file next to the console output
(its directory is created on demand).
"""

import logging
from pathlib import Path
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Optional[str] = None, logfile: Optional[str] = None) -> None:
    """Attach console (and optional file) handlers to the root logger.

    ``level`` and ``logfile`` default to ``settings.log_level`` and
    ``settings.log_file``.  Unknown level names fall back to ``INFO``.
    Does nothing if the root logger already has handlers, e.g. under
    pytest or when ``create_app`` runs twice.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = (level or settings.log_level).upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    target = logfile if logfile is not None else settings.log_file
    if target:
        path = Path(target).resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
