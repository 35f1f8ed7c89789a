from __future__ import annotations

import logging

from .config import settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the package logger.

    Safe to call more than once; later calls only adjust the level.
    """
    root = logging.getLogger("finance_planner")
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if any(getattr(h, "_finance_planner", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._finance_planner = True  # type: ignore[attr-defined]
    root.addHandler(handler)
