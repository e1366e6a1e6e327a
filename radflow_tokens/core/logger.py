from __future__ import annotations

import logging
import os
import sys
from typing import Optional

ROOT_LOGGER = "radflow_tokens"
_FORMAT = "%(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the ``radflow_tokens`` namespace."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(verbose: bool = False, level: Optional[str] = None) -> logging.Logger:
    """Install a single stream handler on the package root logger.

    ``RADFLOW_LOG_LEVEL`` wins over ``verbose`` when set. Calling this twice
    does not stack handlers.
    """
    root = logging.getLogger(ROOT_LOGGER)
    env_level = level or os.environ.get("RADFLOW_LOG_LEVEL")
    if env_level:
        root.setLevel(env_level.upper())
    else:
        root.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not any(getattr(h, "_radflow", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._radflow = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.propagate = False
    return root
