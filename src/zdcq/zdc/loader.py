"""Read collision events from parquet or CSV tables.

Expected columns:

- run_number, timestamp, centrality, vx, vy, vz
- has_zdc (optional, default True)
- energy_zna_0..3, energy_znc_0..3 (individual sectors)
- energy_common_zna, energy_common_znc
"""

import logging
from pathlib import Path
from typing import Iterator, List, Union

import pandas as pd

from zdcq.core.events import CollisionEvent

__all__ = ['EventLoader', 'events_to_dataframe', 'TOWER_COLUMNS', 'REQUIRED_COLUMNS']

logger = logging.getLogger(__name__)

TOWER_COLUMNS = [f"energy_zna_{i}" for i in range(4)] + [f"energy_znc_{i}" for i in range(4)]
REQUIRED_COLUMNS = [
    "run_number", "timestamp", "centrality", "vx", "vy", "vz",
    *TOWER_COLUMNS,
    "energy_common_zna", "energy_common_znc",
]


class EventLoader:
    """Turn an event table into CollisionEvent objects."""

    def read(self, path: Union[str, Path]) -> pd.DataFrame:
        """Read the raw table.

        Raises
        ------
        FileNotFoundError
            If the file does not exist
        ValueError
            If the format is unknown or required columns are missing
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Event file not found: {path}")

        suffix = path.suffix.lower()
        if suffix in (".parquet", ".pq"):
            df = pd.read_parquet(path, engine='pyarrow')
        elif suffix == ".csv":
            df = pd.read_csv(path)
        else:
            raise ValueError(f"Unsupported event file format: {path.suffix}")

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Event file {path.name} is missing columns: {missing}")

        if "has_zdc" not in df.columns:
            df["has_zdc"] = True

        logger.info("Read %d events from %s", len(df), path.name)
        return df

    def iter_events(self, df: pd.DataFrame) -> Iterator[CollisionEvent]:
        for row in df.to_dict("records"):
            yield CollisionEvent(
                run_number=int(row["run_number"]),
                timestamp=int(row["timestamp"]),
                centrality=float(row["centrality"]),
                vx=float(row["vx"]),
                vy=float(row["vy"]),
                vz=float(row["vz"]),
                has_zdc=bool(row["has_zdc"]),
                tower_energies=[float(row[c]) for c in TOWER_COLUMNS],
                common_energy_a=float(row["energy_common_zna"]),
                common_energy_c=float(row["energy_common_znc"]),
            )

    def load(self, path: Union[str, Path]) -> List[CollisionEvent]:
        return list(self.iter_events(self.read(path)))


def events_to_dataframe(events) -> pd.DataFrame:
    """Inverse of EventLoader.iter_events (used to write event files)."""
    rows = []
    for ev in events:
        row = {
            "run_number": ev.run_number,
            "timestamp": ev.timestamp,
            "centrality": ev.centrality,
            "vx": ev.vx,
            "vy": ev.vy,
            "vz": ev.vz,
            "has_zdc": ev.has_zdc,
        }
        row.update(dict(zip(TOWER_COLUMNS, ev.tower_energies)))
        row["energy_common_zna"] = ev.common_energy_a
        row["energy_common_znc"] = ev.common_energy_c
        rows.append(row)
    return pd.DataFrame(rows, columns=REQUIRED_COLUMNS[:6] + ["has_zdc"] + REQUIRED_COLUMNS[6:])
