"""`zdcq` - ZDC Q-vector gain equalisation and recentering.

Subpackages:
- zdc: Energy equalisation, Q-vectors, mean-vertex and recentering corrections
- calibration: Calibration tables, sources and the per-job calibration store
- pipeline: Event processor, QA/bootstrap statistics, output table, orchestrator
- schemas: Pydantic configuration layers
"""

__version__ = "0.1.0"
