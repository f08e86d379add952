"""Calibration sources: where named table collections come from.

A source answers ``fetch(identifier, timestamp)`` with the collection whose
validity window covers the timestamp, or None. Two implementations:

- InMemoryCalibrationSource: tables registered in-process (tests, chained jobs)
- NetCDFCalibrationSource: a directory tree of netCDF files

On disk, identifier "ZDC/recentering/it1_step1" maps to the directory
``<root>/ZDC/recentering/it1_step1`` holding files named
``<valid_from>_<valid_until>.nc`` (milliseconds, half-open window).
"""

import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from zdcq.calibration.serialize import load_collection, save_collection

logger = logging.getLogger(__name__)

VALID_FOREVER = 2**63 - 1

_WINDOW_RE = re.compile(r"^(\d+)_(\d+)\.nc$")


class CalibrationSourceError(RuntimeError):
    """A calibration object exists but cannot be read."""
    pass


@dataclass
class CalibrationCollection:
    """Named tables valid for timestamps in ``[valid_from, valid_until)``."""

    tables: Dict[str, object] = field(default_factory=dict)
    valid_from: int = 0
    valid_until: int = VALID_FOREVER
    origin: str = ""

    def covers(self, timestamp: int) -> bool:
        return self.valid_from <= timestamp < self.valid_until

    def __len__(self):
        return len(self.tables)


class CalibrationSource(ABC):
    """Timestamp-addressed lookup of calibration collections."""

    @abstractmethod
    def fetch(self, identifier: str, timestamp: int) -> Optional[CalibrationCollection]:
        """Return the collection for ``identifier`` valid at ``timestamp``, or None."""


class InMemoryCalibrationSource(CalibrationSource):
    """Collections registered at runtime.

    When several windows cover a timestamp, the most recently added wins.
    ``fetch_count`` records how often the store actually asked.
    """

    def __init__(self):
        self._entries: Dict[str, List[CalibrationCollection]] = {}
        self._lock = threading.Lock()
        self.fetch_count = 0

    def add(self, identifier: str, tables: Dict[str, object],
            valid_from: int = 0, valid_until: int = VALID_FOREVER) -> CalibrationCollection:
        collection = CalibrationCollection(dict(tables), valid_from, valid_until, origin=f"memory:{identifier}")
        with self._lock:
            self._entries.setdefault(identifier, []).append(collection)
        return collection

    def fetch(self, identifier: str, timestamp: int) -> Optional[CalibrationCollection]:
        with self._lock:
            self.fetch_count += 1
            for collection in reversed(self._entries.get(identifier, [])):
                if collection.covers(timestamp):
                    return collection
        return None


class NetCDFCalibrationSource(CalibrationSource):
    """Calibration collections stored as netCDF files under ``root``.

    The window listing of each identifier is read from disk once and kept
    until ``write`` or ``refresh`` touches that identifier, so asking again
    after a miss costs no file system access. Files that failed to load are
    remembered and raise the same error on every fetch.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).expanduser()
        self.fetch_count = 0
        self._listings: Dict[str, List[tuple]] = {}
        self._unreadable: Dict[Path, str] = {}
        self._lock = threading.Lock()

    def _directory(self, identifier: str) -> Path:
        return self.root.joinpath(*[part for part in identifier.split("/") if part])

    def _scan(self, identifier: str) -> List[tuple]:
        directory = self._directory(identifier)
        if not directory.is_dir():
            return []
        found = []
        for path in directory.iterdir():
            match = _WINDOW_RE.match(path.name)
            if match:
                found.append((int(match.group(1)), int(match.group(2)), path))
        return sorted(found)

    def windows(self, identifier: str) -> List[tuple]:
        """All ``(valid_from, valid_until, path)`` stored for ``identifier``."""
        with self._lock:
            if identifier not in self._listings:
                self._listings[identifier] = self._scan(identifier)
            return list(self._listings[identifier])

    def refresh(self, identifier: Optional[str] = None) -> None:
        """Forget cached listings (one identifier, or all) so files written elsewhere are seen."""
        with self._lock:
            if identifier is None:
                self._listings.clear()
                self._unreadable.clear()
            else:
                self._listings.pop(identifier, None)
                directory = self._directory(identifier)
                for path in [p for p in self._unreadable if p.parent == directory]:
                    del self._unreadable[path]

    def fetch(self, identifier: str, timestamp: int) -> Optional[CalibrationCollection]:
        """Load the covering file with the latest ``valid_from``.

        Raises
        ------
        CalibrationSourceError
            If the selected file cannot be read
        """
        self.fetch_count += 1
        covering = [w for w in self.windows(identifier) if w[0] <= timestamp < w[1]]
        if not covering:
            return None

        valid_from, valid_until, path = covering[-1]
        if path in self._unreadable:
            raise CalibrationSourceError(self._unreadable[path])
        try:
            tables = load_collection(path)
        except (OSError, ValueError, KeyError) as e:
            message = f"Cannot read calibration file {path}: {e}"
            with self._lock:
                self._unreadable[path] = message
            raise CalibrationSourceError(message) from e

        logger.debug("Loaded %d tables from %s", len(tables), path)
        return CalibrationCollection(tables, valid_from, valid_until, origin=str(path))

    def write(self, identifier: str, tables: Dict[str, object],
              valid_from: int = 0, valid_until: int = VALID_FOREVER) -> Path:
        """Store ``tables`` as the collection for ``identifier`` in the given window."""
        if valid_until <= valid_from:
            raise ValueError(f"Empty validity window [{valid_from}, {valid_until})")
        path = self._directory(identifier) / f"{valid_from}_{valid_until}.nc"
        save_collection(tables, path)
        self.refresh(identifier)
        logger.info("Calibration %s written: %s (%d tables)", identifier, path, len(tables))
        return path
