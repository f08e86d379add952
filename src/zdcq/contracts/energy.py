"""Energy equalisation stage contract.

Enforces the guarantee that after gain equalisation every tower carries a
finite, non-negative energy (raw value scaled by a non-negative ratio, or 0).
"""

import numpy as np
from zdcq.contracts.base import require


def assert_equalized(energies) -> None:
    """Enforce energy equalisation contract.

    Parameters
    ----------
    energies : array-like
        Output of EnergyEqualizer.equalize()

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    e = np.asarray(energies, dtype=float)

    require(
        e.shape == (8,),
        f"Energy contract violated: expected 8 tower energies, got shape {e.shape}"
    )
    require(
        bool(np.all(np.isfinite(e))),
        f"Energy contract violated: non-finite equalized energy {e.tolist()}"
    )
    require(
        bool(np.all(e >= 0)),
        f"Energy contract violated: negative equalized energy (min={e.min()})"
    )
