"""Logging configuration for Harmonizer."""

import logging
import sys

# Third-party loggers that are chatty at INFO/DEBUG
NOISY_LOGGERS = ("aiohttp", "asyncio", "spotipy", "urllib3")


def setup_logging(verbose: bool = False, quiet: bool = False):
    """Configure logging for the command-line tools.

    Args:
        verbose: Enable debug logging if True.
        quiet: Only report warnings and errors. Ignored when verbose is set.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for ``name`` (typically ``__name__``)."""
    return logging.getLogger(name)
