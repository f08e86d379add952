"""Tower gain equalisation.

Each individual tower is scaled so that its mean response matches a quarter
of the common channel on the same side:

    calibrated = raw * 0.25 * mean(common) / mean(tower)

Means come from the energy slot (run x centrality profiles). A tower whose
mean is not positive stays at 0.
"""

import logging

import numpy as np

from zdcq.calibration.naming import ENERGY_SLOT, ENERGY_TABLE_NAMES
from zdcq.zdc.geometry import N_TOWERS

__all__ = ['EnergyEqualizer', 'side_is_hit']

logger = logging.getLogger(__name__)

# towers of the energy tables that are individual sectors (0 and 5 are common)
INDIVIDUAL_TOWERS = [1, 2, 3, 4, 6, 7, 8, 9]


def side_is_hit(sector_energies, common_energy: float) -> bool:
    """A side is hit when all 4 sectors and its common channel are positive."""
    return bool(np.all(np.asarray(sector_energies, dtype=float) > 0) and common_energy > 0)


class EnergyEqualizer:
    """Gain-equalise the 8 individual towers from the loaded energy slot."""

    def __init__(self, store):
        self.store = store

    def mean_energies(self, run: int, centrality: float) -> np.ndarray:
        """Mean energy of all 10 logical towers for this run and centrality."""
        return np.array([
            self.store.table(*ENERGY_SLOT, name).lookup(run, centrality)
            for name in ENERGY_TABLE_NAMES
        ])

    def equalize(self, raw, run: int, centrality: float) -> np.ndarray:
        """Return 8 calibrated energies (A0..A3, C0..C3)."""
        raw = np.asarray(raw, dtype=float)
        means = self.mean_energies(run, centrality)
        calibrated = np.zeros(N_TOWERS)

        for out, tower in enumerate(INDIVIDUAL_TOWERS):
            mean = means[tower]
            if mean > 0:
                common = means[5] if tower > 4 else means[0]
                calibrated[out] = raw[out] * (0.25 * common) / mean

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Equalized energies run=%d cent=%.1f: %s", run, centrality,
                         np.array2string(calibrated, precision=3))
        return calibrated
