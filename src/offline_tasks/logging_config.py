from __future__ import annotations

import logging
from typing import Optional

_PACKAGE_LOGGER = "offline_tasks"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


# PUBLIC_INTERFACE
def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger and set its level.

    Calling this more than once only updates the level; it never stacks
    handlers. Unknown level names fall back to INFO.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    resolved = logging.getLevelName((level or "INFO").upper())
    logger.setLevel(resolved if isinstance(resolved, int) else logging.INFO)

    if not any(getattr(h, "_offline_tasks", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._offline_tasks = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
