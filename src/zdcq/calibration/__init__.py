"""Calibration tables, their storage and the per-job calibration store.

- tables: the four table variants (also used as accumulators)
- serialize: collections <-> xarray/netCDF
- sources: in-memory and netCDF directory sources
- store: slot validation, caching and the recentering frontier
"""

from zdcq.calibration.tables import (
    AxisProfileTable,
    JointSparseTable,
    RunCentralityTable,
    RunProfileTable,
    SparseBin,
    TABLE_KINDS,
)
from zdcq.calibration.serialize import (
    collection_from_dataset,
    collection_to_dataset,
    load_collection,
    save_collection,
)
from zdcq.calibration.sources import (
    CalibrationCollection,
    CalibrationSource,
    CalibrationSourceError,
    InMemoryCalibrationSource,
    NetCDFCalibrationSource,
)
from zdcq.calibration.store import CalibrationStore, Frontier

__all__ = [
    "AxisProfileTable",
    "JointSparseTable",
    "RunCentralityTable",
    "RunProfileTable",
    "SparseBin",
    "TABLE_KINDS",
    "collection_from_dataset",
    "collection_to_dataset",
    "load_collection",
    "save_collection",
    "CalibrationCollection",
    "CalibrationSource",
    "CalibrationSourceError",
    "InMemoryCalibrationSource",
    "NetCDFCalibrationSource",
    "CalibrationStore",
    "Frontier",
]
