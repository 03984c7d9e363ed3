"""``OCI_DEBUG`` switch: routes ocigen DEBUG records to stderr."""

from __future__ import annotations

import logging
import os

_LOGGER_NAME = "ocigen"
_FORMAT = "[OCI Debug] %(name)s: %(message)s"


def debug_enabled() -> bool:
    """Return ``True`` when the ``OCI_DEBUG`` environment variable is set."""
    return os.environ.get("OCI_DEBUG", "").lower() not in ("", "0", "false", "no")


def configure_debug_logging(force: bool = False) -> logging.Logger:
    """Attach a stderr handler at DEBUG level to the ``ocigen`` logger.

    Does nothing unless *force* is set or ``OCI_DEBUG`` is enabled.  Calling
    it more than once does not add duplicate handlers.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    if not (force or debug_enabled()):
        return logger

    if not any(getattr(h, "_ocigen_debug", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._ocigen_debug = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return logger
