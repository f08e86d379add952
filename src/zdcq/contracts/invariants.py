"""Formal pipeline invariants.

This file documents what each stage MUST produce. This is architecture, not code.
Use this file as a reviewer anchor and system reference.
"""

PIPELINE_INVARIANTS = {
    "selection": [
        "Centrality outside [centrality_min, centrality_max] rejects the event",
        "Events without a ZDC hit are rejected",
        "A side is hit only if its 4 towers and its common channel are > 0",
        "Rejected events still emit a record: zero vector, selected=False, (0, 0)",
    ],

    "energy": [
        "8 equalized energies, finite and non-negative",
        "calibrated = raw * 0.25 * mean(common) / mean(tower) when mean(tower) > 0, else 0",
        "Without an energy calibration slot the event is rejected",
    ],

    "qvector": [
        "Stage (0, 0) is the raw Q-vector (QXA, QYA, QXC, QYC)",
        "A side with zero summed weight contributes (0, 0)",
        "Each component is a weighted mean of tower coordinates, so |Qx|, |Qy| <= 1.75",
    ],

    "recentering": [
        "stage(i, s) = stage(i, s-1) - correction(i, s-1) for s = 1..5",
        "stage(i, 0) = stage(0, 0) for i = 1, else stage(i-1, 5)",
        "The frontier is found by a forward scan that stops at the first invalid slot",
        "No slot past the frontier is ever consumed",
        "A sparse bin below min_entries gives correction 0 and selected=False",
    ],

    "output": [
        "One record per input event, field order fixed",
        "reached_iteration in 0..5, reached_step in 0..5, iteration 0 implies step 0",
        "Q-vector components are finite",
    ],

    "statistics": [
        "Histogram names and binning match the calibration tables they seed",
        "Only selected events fill Q-vector statistics",
    ],
}

# Which stages are optional vs required
STAGE_REQUIREMENTS = {
    "selection": "REQUIRED",
    "energy": "REQUIRED",       # no energy calibration -> event rejected
    "qvector": "REQUIRED",
    "recentering": "OPTIONAL",  # depth bounded by calibration availability
    "output": "REQUIRED",
    "statistics": "REQUIRED",
}
