"""Append-only per-event output table."""

import logging
import threading
from pathlib import Path
from typing import List, Union

import pandas as pd

from zdcq.core.events import OUTPUT_COLUMNS, OutputRecord

__all__ = ['OutputTable']

logger = logging.getLogger(__name__)


class OutputTable:
    """Collect OutputRecords and write them as parquet.

    Column order is fixed by OutputRecord and must not change: consumers
    read ``reached_iteration``/``reached_step`` to interpret the vector.
    """

    def __init__(self):
        self._records: List[OutputRecord] = []
        self._lock = threading.Lock()

    def append(self, record: OutputRecord) -> None:
        with self._lock:
            self._records.append(record)

    def __len__(self):
        return len(self._records)

    @property
    def records(self) -> List[OutputRecord]:
        with self._lock:
            return list(self._records)

    def to_dataframe(self) -> pd.DataFrame:
        rows = [r.model_dump() for r in self.records]
        df = pd.DataFrame(rows, columns=OUTPUT_COLUMNS)
        return df.astype({
            "run_number": "int64",
            "selected": "bool",
            "reached_iteration": "int64",
            "reached_step": "int64",
        })

    def save(self, path: Union[str, Path], compression: str = "snappy") -> Path:
        """Write all records to parquet (pyarrow)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        df = self.to_dataframe()
        df.to_parquet(path, engine='pyarrow',
                      compression=None if compression == "none" else compression,
                      index=False)
        logger.info("Exported %d rows to: %s", len(df), path)
        return path
