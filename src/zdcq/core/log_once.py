"""Rate-limited logging for conditions that repeat on every event.

Calibration availability is effectively constant over a job, so a missing
table would otherwise be reported once per event. RateLimitedLogger emits
each distinct message at most ``max_repeats`` times.
"""

import logging
import threading
from typing import Optional


class RateLimitedLogger:
    """Wrap a ``logging.Logger`` and cap repeats per distinct message.

    A message is its template together with its arguments: slot (1, 0) and
    slot (1, 1) missing are two conditions, each reported on its own.

    Parameters
    ----------
    logger : logging.Logger
        Destination logger.
    max_repeats : int or None
        Emissions allowed per distinct message. None disables the limit.

    Example
    -------
    >>> log = RateLimitedLogger(logging.getLogger(__name__), max_repeats=1)
    >>> log.warning("Slot (%d, %d) not available", 1, 0)   # emitted
    >>> log.warning("Slot (%d, %d) not available", 1, 1)   # emitted
    >>> log.warning("Slot (%d, %d) not available", 1, 0)   # suppressed
    """

    def __init__(self, logger: logging.Logger, max_repeats: Optional[int] = 1):
        self.logger = logger
        self.max_repeats = max_repeats
        self._counts = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(msg: str, args: tuple) -> tuple:
        # arguments may be unhashable (arrays, lists)
        return msg, repr(args)

    def _allow(self, msg: str, args: tuple) -> bool:
        if self.max_repeats is None:
            return True
        key = self._key(msg, args)
        with self._lock:
            seen = self._counts.get(key, 0)
            self._counts[key] = seen + 1
        return seen < self.max_repeats

    def suppressed(self, msg: str, *args) -> int:
        """Number of times ``msg % args`` was requested but not emitted."""
        if self.max_repeats is None:
            return 0
        return max(0, self._counts.get(self._key(msg, args), 0) - self.max_repeats)

    def log(self, level: int, msg: str, *args) -> None:
        if self.logger.isEnabledFor(level) and self._allow(msg, args):
            self.logger.log(level, msg, *args)

    def debug(self, msg: str, *args) -> None:
        self.log(logging.DEBUG, msg, *args)

    def info(self, msg: str, *args) -> None:
        self.log(logging.INFO, msg, *args)

    def warning(self, msg: str, *args) -> None:
        self.log(logging.WARNING, msg, *args)

    def error(self, msg: str, *args) -> None:
        self.log(logging.ERROR, msg, *args)
