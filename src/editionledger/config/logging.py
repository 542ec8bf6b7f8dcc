"""Logging setup for the command line and scripts."""

from __future__ import annotations

import logging

_NOISY_LOGGERS = ("httpx", "httpcore", "alembic.runtime.migration")


def configure_logging(*, verbose: bool = False, force: bool = False) -> None:
    """Initialise the root logger once.

    INFO by default, DEBUG with ``verbose``. The HTTP stack and Alembic are kept at
    WARNING unless verbose, since they log every request and every migration step.
    Pass ``force=True`` to reconfigure during tests.
    """

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if verbose else logging.WARNING)
