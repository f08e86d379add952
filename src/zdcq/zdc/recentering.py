"""Iterative Q-vector recentering.

Five iterations of five steps. Step 0 subtracts the mean Q-vector of the
event's (centrality, vx, vy, vz) cell; steps 1..4 subtract the mean as a
function of centrality, vx, vy and vz respectively:

    stage(i, s) = stage(i, s - 1) - correction(i, step s - 1)

stage(i, 0) is the raw vector for i = 1 and stage(i - 1, 5) otherwise.
Only the slots consumed by the frontier are applied.
"""

import logging
from typing import Optional

import numpy as np

from zdcq.calibration.naming import N_ITERATIONS, N_STEPS, recentering_table_names
from zdcq.calibration.store import Frontier
from zdcq.contracts import assert_stage_vector
from zdcq.core.log_once import RateLimitedLogger

__all__ = ['StageGrid', 'RecenteringEngine']

logger = logging.getLogger(__name__)


class StageGrid:
    """Per-event working set of stage vectors, indexed (iteration, stage).

    ``values[0, 0]`` is the raw vector. Entries past the frontier stay 0
    and are never read.
    """

    def __init__(self, raw):
        self.values = np.zeros((N_ITERATIONS + 1, N_STEPS + 1, 4))
        self.values[0, 0] = np.asarray(raw, dtype=float)

    @property
    def raw(self) -> np.ndarray:
        return self.values[0, 0]

    def stage(self, iteration: int, step: int) -> np.ndarray:
        return self.values[iteration, step]

    def at(self, frontier: Frontier) -> np.ndarray:
        return self.values[frontier.iteration, frontier.step]

    def begin_iteration(self, iteration: int) -> None:
        source = self.values[0, 0] if iteration == 1 else self.values[iteration - 1, N_STEPS]
        self.values[iteration, 0] = source

    def apply(self, iteration: int, step: int, correction) -> np.ndarray:
        """Write stage (iteration, step + 1) = stage (iteration, step) - correction."""
        self.values[iteration, step + 1] = self.values[iteration, step] - np.asarray(correction, dtype=float)
        return self.values[iteration, step + 1]


class RecenteringEngine:
    """Apply the recentering corrections of a store up to a frontier.

    Parameters
    ----------
    store : CalibrationStore
        Loaded calibration slots
    min_entries : int
        Entries a joint (step 0) cell needs to be used
    log : RateLimitedLogger, optional
        Sink for sparse-bin messages
    """

    def __init__(self, store, min_entries: int, log: Optional[RateLimitedLogger] = None):
        self.store = store
        self.min_entries = min_entries
        self.log = log or RateLimitedLogger(logger)

    def correction(self, iteration: int, step: int, centrality: float,
                   vx: float, vy: float, vz: float) -> tuple:
        """Corrections for the 4 components of one slot.

        Returns
        -------
        (np.ndarray, bool)
            Corrections and whether the event stays selected. A joint cell
            with fewer than ``min_entries`` entries contributes 0 and
            deselects the event.
        """
        names = recentering_table_names(step)
        values = np.zeros(4)
        selected = True

        for c, name in enumerate(names):
            table = self.store.table(iteration, step, name)
            if step == 0:
                cell = table.lookup(centrality, vx, vy, vz)
                if cell.entries < self.min_entries:
                    self.log.debug("Sparse bin with %d entries (< %d) not used, increase bin size",
                                   cell.entries, self.min_entries)
                    selected = False
                    continue
                values[c] = cell.mean
            else:
                coordinate = {"centrality": centrality, "vx": vx, "vy": vy, "vz": vz}[table.variable]
                values[c] = table.lookup(coordinate)

        return values, selected

    def run(self, raw, frontier: Frontier, centrality: float,
            vx: float, vy: float, vz: float) -> tuple:
        """Build the stage grid up to ``frontier``.

        Returns
        -------
        (StageGrid, bool)
            The filled grid and the selection flag
        """
        grid = StageGrid(raw)
        selected = True

        for iteration, step in frontier.consumed_slots():
            if step == 0:
                grid.begin_iteration(iteration)
            corr, ok = self.correction(iteration, step, centrality, vx, vy, vz)
            selected = selected and ok
            stage = grid.apply(iteration, step, corr)
            assert_stage_vector(stage, iteration, step + 1)

        return grid, selected
