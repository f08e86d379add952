"""Raw (stage 0) Q-vector from equalized tower energies."""

import numpy as np

from zdcq.zdc.geometry import ALPHA, N_SECTORS, PX, PY, SIDE_A, SIDE_C, X_SIGN


def tower_weights(energies, alpha: float = ALPHA) -> np.ndarray:
    """``E^alpha`` per tower; non-positive energies weigh 0."""
    e = np.clip(np.asarray(energies, dtype=float), 0.0, None)
    return np.power(e, alpha)


def compute_qvector(energies, px=PX, py=PY, alpha: float = ALPHA) -> np.ndarray:
    """Energy-weighted centroid of each side.

    Parameters
    ----------
    energies : array-like, shape (8,)
        Equalized energies, A0..A3 then C0..C3.

    Returns
    -------
    np.ndarray, shape (4,)
        (QXA, QYA, QXC, QYC). A side whose weights sum to 0 stays at (0, 0).
    """
    weights = tower_weights(energies, alpha).reshape(2, N_SECTORS)
    q = np.zeros(4)

    for side in (SIDE_A, SIDE_C):
        w = weights[side]
        total = w.sum()
        if total > 0:
            q[2 * side] = X_SIGN[side] * np.dot(px, w) / total
            q[2 * side + 1] = np.dot(py, w) / total
    return q


def event_plane_angles(q) -> tuple:
    """Event-plane angles (psiA, psiC, psiFull) of a stage vector."""
    qxa, qya, qxc, qyc = (float(c) for c in q)
    return (
        float(np.arctan2(qya, qxa)),
        float(np.arctan2(qyc, qxc)),
        float(np.arctan2(qya + qyc, qxa + qxc)),
    )
