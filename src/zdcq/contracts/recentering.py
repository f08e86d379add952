"""Recentering stage contracts.

Enforces that every stage vector is a finite 4-vector and that the frontier
never skips an unloaded calibration slot.
"""

import numpy as np
from zdcq.contracts.base import require


def assert_stage_vector(vector, iteration: int, step: int) -> None:
    """Enforce that stage (iteration, step) holds four finite components.

    Raises
    ------
    ContractViolation
        If the vector has the wrong shape or non-finite components
    """
    q = np.asarray(vector, dtype=float)
    require(
        q.shape == (4,),
        f"Recentering contract violated: stage ({iteration}, {step}) has shape {q.shape}, expected (4,)"
    )
    require(
        bool(np.all(np.isfinite(q))),
        f"Recentering contract violated: stage ({iteration}, {step}) is not finite: {q.tolist()}"
    )


def assert_frontier(frontier, is_loaded) -> None:
    """Enforce the monotonic frontier.

    Every recentering slot consumed to reach ``frontier`` must be loaded.

    Parameters
    ----------
    frontier : Frontier
        Reached stage coordinate
    is_loaded : callable
        ``is_loaded(iteration, step) -> bool`` for recentering slots

    Raises
    ------
    ContractViolation
        If a consumed slot is not loaded
    """
    require(
        0 <= frontier.iteration <= 5 and 0 <= frontier.step <= 5,
        f"Frontier contract violated: ({frontier.iteration}, {frontier.step}) out of range"
    )
    if frontier.iteration == 0:
        require(
            frontier.step == 0,
            f"Frontier contract violated: iteration 0 with step {frontier.step}"
        )
        return

    for iteration, step in frontier.consumed_slots():
        require(
            is_loaded(iteration, step),
            f"Frontier contract violated: slot ({iteration}, {step}) used but not loaded"
        )
