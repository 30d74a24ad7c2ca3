"""Logging setup for the command line entry point."""

from __future__ import annotations

import logging

from .env import optional_env_var

LOG_LEVEL_ENV = "ROSTERSYNC_LOG_LEVEL"

# httpx logs full request URLs at INFO, and phpBB URLs carry the API key.
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Send log records to stderr so command output on stdout stays machine readable.

    ``level`` defaults to ``ROSTERSYNC_LOG_LEVEL`` (a level name) or INFO. Pass
    ``force=True`` to replace handlers installed by an earlier call.
    """

    if level is None:
        name = (optional_env_var(LOG_LEVEL_ENV) or "INFO").upper()
        level = logging.getLevelNamesMapping().get(name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for noisy in _QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
