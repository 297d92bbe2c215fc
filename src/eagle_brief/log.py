from __future__ import annotations

import logging
import os

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handler: logging.Handler | None = None


def configure_logging(level: str | None = None) -> None:
    """Route ``eagle_brief`` logs to stderr. Only the CLI and the API call this."""
    global _handler

    name = (level or os.getenv("EAGLE_BRIEF_LOG_LEVEL") or "INFO").upper()
    package = logging.getLogger("eagle_brief")
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        package.addHandler(_handler)
    package.setLevel(getattr(logging, name, logging.INFO))
