"""Fixed ZDC neutron-calorimeter geometry.

Each side has 4 sectors arranged on a 2x2 grid. Sector centres (cm):

    sector   px      py
    0       -1.75   -1.75
    1        1.75   -1.75
    2       -1.75    1.75
    3        1.75    1.75

Side A faces the opposite direction along the beam, so its x coordinate is
mirrored (sign -1) when the same table is used for both sides.
"""

import numpy as np

N_SECTORS = 4
N_TOWERS = 2 * N_SECTORS

PX = np.array([-1.75, 1.75, -1.75, 1.75])
PY = np.array([-1.75, -1.75, 1.75, 1.75])

# Energy exponent of the tower weights
ALPHA = 0.395

SIDE_A = 0
SIDE_C = 1
X_SIGN = {SIDE_A: -1.0, SIDE_C: 1.0}


def side_of_tower(tower: int) -> int:
    """Towers 0..3 are side A, 4..7 side C."""
    return SIDE_A if tower < N_SECTORS else SIDE_C
