"""
app/logging_setup.py — Process logging configuration
====================================================
Console handler plus an optional daily-rotated log file. Handlers are
attached to the "cv" logger so every cv.* module logger inherits them.

Calling configure_logging() again replaces the handlers it installed
earlier instead of stacking duplicates.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s – %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_MARKER = "_cv_handler"


def configure_logging(level: Union[str, int] = "INFO",
                      log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    root = logging.getLogger("cv")
    root.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in [h for h in root.handlers if getattr(h, _MARKER, False)]:
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    setattr(console, _MARKER, True)
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.TimedRotatingFileHandler(
            path, when="midnight", backupCount=14, encoding="utf-8",
        )
        rotating.setFormatter(formatter)
        setattr(rotating, _MARKER, True)
        root.addHandler(rotating)

    return root
