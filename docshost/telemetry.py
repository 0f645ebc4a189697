"""Out-of-band error reporting.

Every internal error is logged with its traceback, then handed to each
registered reporter (e.g. an error-tracking SDK hook). Reporting is best
effort: a reporter that raises never prevents the error page from rendering.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

ErrorReporter = Callable[[BaseException], None]

_reporters: list[ErrorReporter] = []


def add_error_reporter(reporter: ErrorReporter) -> None:
    _reporters.append(reporter)


def clear_error_reporters() -> None:
    _reporters.clear()


def report_error(err: BaseException) -> None:
    """Log ``err`` and forward it to every registered reporter."""
    logger.error(
        "Internal error: %s",
        err,
        exc_info=(type(err), err, err.__traceback__),
    )
    for reporter in list(_reporters):
        try:
            reporter(err)
        except Exception:
            logger.warning(
                "Error reporter %r failed", getattr(reporter, "__name__", reporter),
                exc_info=True,
            )
