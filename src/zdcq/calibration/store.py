"""Calibration table store.

Owns the per-slot calibration state for a job:

- slot (0, 0): tower energy equalisation
- slot (0, 1): mean vertex
- slots (i, s), i = 1..5, s = 0..4: recentering step s of iteration i

A slot is loaded when its collection exists and every required table is
present, of the right kind and not empty. Per-bin statistics are checked
later, at lookup time, because they depend on the event.

Collections are cached per slot for their validity window; a timestamp
inside the window never triggers a new fetch. A miss is not cached: the
next event asks the source again, so availability depends on the event
timestamp alone.
"""

import logging
import threading
from typing import Dict, List, NamedTuple, Optional, TYPE_CHECKING

from zdcq.contracts import CalibrationLookupError
from zdcq.core.log_once import RateLimitedLogger
from zdcq.calibration.naming import (
    ENERGY_KIND,
    ENERGY_SLOT,
    ENERGY_TABLE_NAMES,
    N_ITERATIONS,
    N_STEPS,
    VERTEX_KIND,
    VERTEX_SLOT,
    VERTEX_TABLE_NAMES,
    recentering_kind,
    recentering_table_names,
)
from zdcq.calibration.sources import (
    CalibrationCollection,
    CalibrationSource,
    CalibrationSourceError,
)

if TYPE_CHECKING:
    from zdcq.schemas import InternalConfig

__all__ = ['CalibrationStore', 'Frontier', 'SlotState']

logger = logging.getLogger(__name__)


class Frontier(NamedTuple):
    """Stage coordinate reached by recentering.

    (0, 0) means no recentering. Otherwise (i, s) is the stage after the
    correction of step s - 1 of iteration i, with every earlier slot applied.
    """
    iteration: int = 0
    step: int = 0

    @classmethod
    def after_slot(cls, iteration: int, step: int) -> "Frontier":
        return cls(iteration, step + 1)

    def consumed_slots(self) -> list:
        """Recentering slots applied to reach this stage, in order."""
        slots = []
        for iteration in range(1, self.iteration + 1):
            last = N_STEPS if iteration < self.iteration else self.step
            slots.extend((iteration, step) for step in range(last))
        return slots


class SlotState:
    """Identifier, cached collection and validity of one slot."""

    def __init__(self):
        self.identifier: Optional[str] = None
        self.collection: Optional[CalibrationCollection] = None
        self.loaded = False

    def __repr__(self):
        return f"SlotState(identifier={self.identifier!r}, loaded={self.loaded})"


class CalibrationStore:
    """Load, validate and cache calibration slots.

    Parameters
    ----------
    config : InternalConfig
        Calibration identifiers
    source : CalibrationSource
        Where collections come from
    log : RateLimitedLogger, optional
        Sink for the non-fatal availability messages

    Example
    -------
    >>> store = CalibrationStore(config, source)
    >>> store.load_energy(timestamp)
    True
    >>> store.load_recentering(timestamp)
    Frontier(iteration=1, step=1)
    """

    def __init__(self, config: "InternalConfig", source: CalibrationSource,
                 log: Optional[RateLimitedLogger] = None):
        self.config = config
        self.source = source
        self.log = log or RateLimitedLogger(logger, config.logging.max_repeats)

        self._slots: Dict[tuple, SlotState] = {}
        self._lock = threading.RLock()

        # last recentering slot that validated
        self.at_iteration = 0
        self.at_step = 0

    # ------------------------------------------------------------------
    # Slot loading
    # ------------------------------------------------------------------
    def load_slot(self, iteration: int, step: int, timestamp: int,
                  identifier: Optional[str], names: List[str], kind: str) -> bool:
        """Load and validate one slot. Returns the loaded flag.

        Reloading for a timestamp inside the cached window is side-effect free.
        """
        with self._lock:
            slot = self._slots.setdefault((iteration, step), SlotState())

            if not identifier:
                slot.identifier, slot.collection, slot.loaded = None, None, False
                self.log.info("Calibration slot (%d, %d) disabled: no identifier configured", iteration, step)
                return False

            if (slot.identifier == identifier and slot.collection is not None
                    and slot.collection.covers(timestamp)):
                return slot.loaded

            collection = self._fetch(identifier, timestamp)
            slot.identifier = identifier
            slot.collection = collection
            slot.loaded = self._validate(iteration, step, identifier, collection, names, kind)

            if slot.loaded:
                self.log.info("Calibration slot (%d, %d) loaded from %s", iteration, step, collection.origin)
            return slot.loaded

    def _fetch(self, identifier: str, timestamp: int) -> Optional[CalibrationCollection]:
        try:
            return self.source.fetch(identifier, timestamp)
        except CalibrationSourceError as e:
            self.log.error("Calibration source error for %s: %s", identifier, e)
            return None

    def _validate(self, iteration: int, step: int, identifier: str,
                  collection: Optional[CalibrationCollection],
                  names: List[str], kind: str) -> bool:
        if collection is None or len(collection) == 0:
            self.log.warning("Could not load calibration tables from %s", identifier)
            return False

        for name in names:
            table = collection.tables.get(name)
            if table is None:
                self.log.error("Table %s not found in %s", name, identifier)
                return False
            if getattr(table, "kind", None) != kind:
                self.log.error("Table %s in %s has kind %s, expected %s",
                               name, identifier, getattr(table, "kind", None), kind)
                return False
            if table.is_empty():
                self.log.info("%s is empty: produce the calibration for slot (%d, %d) first",
                              name, iteration, step)
                return False
        return True

    def load_energy(self, timestamp: int) -> bool:
        return self.load_slot(*ENERGY_SLOT, timestamp, self.config.calibration.energy,
                              ENERGY_TABLE_NAMES, ENERGY_KIND)

    def load_mean_vertex(self, timestamp: int) -> bool:
        return self.load_slot(*VERTEX_SLOT, timestamp, self.config.calibration.mean_vertex,
                              VERTEX_TABLE_NAMES, VERTEX_KIND)

    def load_recentering(self, timestamp: int) -> Frontier:
        """Scan (1, 0) .. (5, 4) in order and stop at the first invalid slot.

        Returns
        -------
        Frontier
            (0, 0) if slot (1, 0) is invalid, else the stage after the last
            valid slot
        """
        identifiers = self.config.calibration.recentering
        last = None
        with self._lock:
            for iteration in range(1, N_ITERATIONS + 1):
                for step in range(N_STEPS):
                    ok = self.load_slot(iteration, step, timestamp,
                                        identifiers[iteration - 1][step],
                                        recentering_table_names(step),
                                        recentering_kind(step))
                    if not ok:
                        return self._frontier(last)
                    last = (iteration, step)
            return self._frontier(last)

    def _frontier(self, last) -> Frontier:
        if last is None:
            self.at_iteration, self.at_step = 0, 0
            return Frontier(0, 0)
        self.at_iteration, self.at_step = last
        return Frontier.after_slot(*last)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def is_loaded(self, iteration: int, step: int) -> bool:
        slot = self._slots.get((iteration, step))
        return slot is not None and slot.loaded

    def slot(self, iteration: int, step: int) -> Optional[SlotState]:
        return self._slots.get((iteration, step))

    def table(self, iteration: int, step: int, name: str):
        """Return a table from a loaded slot.

        Raises
        ------
        CalibrationLookupError
            If the slot is not loaded or does not hold ``name``
        """
        slot = self._slots.get((iteration, step))
        if slot is None or not slot.loaded or slot.collection is None:
            raise CalibrationLookupError(
                f"{name} requested from calibration slot ({iteration}, {step}) which is not loaded"
            )
        table = slot.collection.tables.get(name)
        if table is None:
            raise CalibrationLookupError(
                f"{name} not available in calibration slot ({iteration}, {step}) from {slot.identifier}"
            )
        return table
