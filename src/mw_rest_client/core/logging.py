"""
Logging Setup

All modules log through named loggers under the ``mwclient`` namespace
(``mwclient.auth``, ``mwclient.rest``, ...). Nothing is configured on import;
applications call :func:`configure_logging` once at startup.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from ..config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Attach a stream handler to the ``mwclient`` logger.

    Parameters
    ----------
    level : Optional[Union[int, str]]
        Log level override. Defaults to ``settings.log_level``.

    Returns
    -------
    logging.Logger
        The configured ``mwclient`` root logger.
    """
    logger = logging.getLogger("mwclient")
    resolved = level if level is not None else settings.log_level
    if isinstance(resolved, str):
        resolved = resolved.upper()
    logger.setLevel(resolved)

    # Idempotent: calling twice must not duplicate output
    if not any(getattr(h, "_mwclient_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._mwclient_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
