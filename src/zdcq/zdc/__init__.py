"""ZDC-side computation: geometry, gain equalisation, Q-vectors, recentering."""

from zdcq.zdc.equalizer import EnergyEqualizer, side_is_hit
from zdcq.zdc.qvector import compute_qvector, event_plane_angles
from zdcq.zdc.vertex import MeanVertexCorrector
from zdcq.zdc.recentering import RecenteringEngine, StageGrid
from zdcq.zdc.loader import EventLoader

__all__ = [
    "EnergyEqualizer",
    "side_is_hit",
    "compute_qvector",
    "event_plane_angles",
    "MeanVertexCorrector",
    "RecenteringEngine",
    "StageGrid",
    "EventLoader",
]
