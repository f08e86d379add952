"""Mean-vertex subtraction applied before recentering."""

from zdcq.calibration.naming import VERTEX_SLOT


class MeanVertexCorrector:
    """Subtract the run-dependent mean of vx and vy. vz is kept as is."""

    def __init__(self, store):
        self.store = store

    def correct(self, run: int, vx: float, vy: float, vz: float) -> tuple:
        mean_vx = self.store.table(*VERTEX_SLOT, "hvertex_vx").lookup(run)
        mean_vy = self.store.table(*VERTEX_SLOT, "hvertex_vy").lookup(run)
        return (vx - mean_vx, vy - mean_vy, vz)
