"""
Logging setup for the command line tools.

Deutsch:
    Logging-Einrichtung für die Kommandozeilenwerkzeuge.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable

LOGLEVEL_ENV = "E2TRANSCODE_LOGLEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

# Connection pool chatter from requests; only useful when debugging receivers.
NOISY_LOGGERS = ("urllib3",)


def configure_logging(default_level: str = "INFO", noisy: Iterable[str] = NOISY_LOGGERS) -> int:
    """
    Configure the root logger and return the effective level.

    ``E2TRANSCODE_LOGLEVEL`` wins over ``default_level``. Loggers listed in
    ``noisy`` are held at WARNING unless the effective level is DEBUG.
    Calling it again (``--verbose`` then ``debug: true``) only adjusts levels.

    Deutsch:
        Richtet das Root-Logging ein und liefert das wirksame Level.
    """

    level_name = os.getenv(LOGLEVEL_ENV, default_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)

    for name in noisy:
        logging.getLogger(name).setLevel(logging.NOTSET if level <= logging.DEBUG else logging.WARNING)
    return level
