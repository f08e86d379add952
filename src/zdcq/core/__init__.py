"""Shared infrastructure: axes and histograms, event records, logging helpers."""

from zdcq.core.histograms import Axis, Hist1D, Hist2D
from zdcq.core.events import CollisionEvent, OutputRecord, OUTPUT_COLUMNS
from zdcq.core.log_once import RateLimitedLogger

__all__ = [
    "Axis",
    "Hist1D",
    "Hist2D",
    "CollisionEvent",
    "OutputRecord",
    "OUTPUT_COLUMNS",
    "RateLimitedLogger",
]
