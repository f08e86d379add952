"""Calibration table variants.

Each class is both the accumulator that is filled during a job and the
lookup table that a later job reads back. The ``kind`` tag is checked
at load time so a slot never holds a table of the wrong shape.

| kind             | class                | keyed by                          |
|------------------|----------------------|-----------------------------------|
| run_centrality   | RunCentralityTable   | run number, centrality bin        |
| run_profile      | RunProfileTable      | run number                        |
| axis_profile     | AxisProfileTable     | bin of one variable               |
| joint_sparse     | JointSparseTable     | (centrality, vx, vy, vz) bins     |

Every bin stores entries, sum and sum of squares. The mean of an empty bin
(or of an unknown run) is 0.
"""

from typing import Dict, NamedTuple, Tuple

import numpy as np
import xarray as xr

from zdcq.core.histograms import Axis, axis_attrs, axis_from_attrs


def _safe_mean(total, entries):
    """Elementwise sum/entries with 0 where entries == 0."""
    total = np.asarray(total, dtype=float)
    entries = np.asarray(entries, dtype=float)
    out = np.zeros_like(total)
    np.divide(total, entries, out=out, where=entries > 0)
    return out


class SparseBin(NamedTuple):
    """Content of one 4-D cell projected onto the Q axis."""
    mean: float
    entries: int


class CalibrationTable:
    """Common interface of all table variants."""

    kind = ""

    def __init__(self, name: str):
        self.name = name
        self.total_entries = 0

    def is_empty(self) -> bool:
        return self.total_entries < 1

    def attrs(self) -> dict:
        return {"total_entries": self.total_entries}


class RunCentralityTable(CalibrationTable):
    """Mean value per (run, centrality bin). Used for tower gain equalisation."""

    kind = "run_centrality"

    def __init__(self, name: str, centrality_axis: Axis):
        super().__init__(name)
        self.axis = centrality_axis
        self._runs: Dict[int, np.ndarray] = {}

    def _row(self, run: int) -> np.ndarray:
        row = self._runs.get(run)
        if row is None:
            row = np.zeros((3, self.axis.nbins + 2))
            self._runs[run] = row
        return row

    @property
    def runs(self) -> list:
        return sorted(self._runs)

    def fill(self, run: int, centrality: float, value: float, weight: float = 1.0) -> None:
        row = self._row(int(run))
        b = self.axis.find_bin(centrality)
        row[0, b] += weight
        row[1, b] += weight * value
        row[2, b] += weight * value * value
        self.total_entries += 1

    def lookup(self, run: int, centrality: float) -> float:
        row = self._runs.get(int(run))
        if row is None:
            return 0.0
        b = self.axis.find_bin(centrality)
        return float(_safe_mean(row[1, b], row[0, b]))

    def entries(self, run: int, centrality: float) -> float:
        row = self._runs.get(int(run))
        return 0.0 if row is None else float(row[0, self.axis.find_bin(centrality)])

    def to_variables(self) -> dict:
        runs = self.runs
        data = np.stack([self._runs[r] for r in runs]) if runs else np.zeros((0, 3, self.axis.nbins + 2))
        coords = {"run": np.asarray(runs, dtype=np.int64)}
        return {
            "entries": xr.DataArray(data[:, 0, :], dims=("run", "bin"), coords=coords),
            "sum": xr.DataArray(data[:, 1, :], dims=("run", "bin"), coords=coords),
            "sum2": xr.DataArray(data[:, 2, :], dims=("run", "bin"), coords=coords),
        }

    def attrs(self) -> dict:
        attrs = super().attrs()
        attrs.update(axis_attrs("centrality", self.axis))
        return attrs

    @classmethod
    def from_variables(cls, name: str, variables: dict, attrs: dict) -> "RunCentralityTable":
        table = cls(name, axis_from_attrs("centrality", attrs))
        runs = variables["entries"]["run"].values
        for i, run in enumerate(runs):
            table._runs[int(run)] = np.stack([
                variables["entries"].values[i],
                variables["sum"].values[i],
                variables["sum2"].values[i],
            ]).astype(float)
        table.total_entries = int(attrs["total_entries"])
        return table


class RunProfileTable(CalibrationTable):
    """Mean value per run. Used for the mean vertex position."""

    kind = "run_profile"

    def __init__(self, name: str):
        super().__init__(name)
        self._runs: Dict[int, np.ndarray] = {}

    @property
    def runs(self) -> list:
        return sorted(self._runs)

    def fill(self, run: int, value: float, weight: float = 1.0) -> None:
        row = self._runs.setdefault(int(run), np.zeros(3))
        row += (weight, weight * value, weight * value * value)
        self.total_entries += 1

    def lookup(self, run: int) -> float:
        row = self._runs.get(int(run))
        if row is None:
            return 0.0
        return float(_safe_mean(row[1], row[0]))

    def entries(self, run: int) -> float:
        row = self._runs.get(int(run))
        return 0.0 if row is None else float(row[0])

    def to_variables(self) -> dict:
        runs = self.runs
        data = np.stack([self._runs[r] for r in runs]) if runs else np.zeros((0, 3))
        coords = {"run": np.asarray(runs, dtype=np.int64)}
        return {
            "entries": xr.DataArray(data[:, 0], dims=("run",), coords=coords),
            "sum": xr.DataArray(data[:, 1], dims=("run",), coords=coords),
            "sum2": xr.DataArray(data[:, 2], dims=("run",), coords=coords),
        }

    @classmethod
    def from_variables(cls, name: str, variables: dict, attrs: dict) -> "RunProfileTable":
        table = cls(name)
        runs = variables["entries"]["run"].values
        for i, run in enumerate(runs):
            table._runs[int(run)] = np.array([
                variables["entries"].values[i],
                variables["sum"].values[i],
                variables["sum2"].values[i],
            ], dtype=float)
        table.total_entries = int(attrs["total_entries"])
        return table


class AxisProfileTable(CalibrationTable):
    """Mean value per bin of one variable.

    ``variable`` names the event coordinate the table is keyed by
    ("centrality", "vx", "vy", "vz"); QA profiles use free-form labels.
    """

    kind = "axis_profile"

    def __init__(self, name: str, axis: Axis, variable: str):
        super().__init__(name)
        self.axis = axis
        self.variable = variable
        self.data = np.zeros((3, axis.nbins + 2))

    def fill(self, x: float, value: float, weight: float = 1.0) -> None:
        b = self.axis.find_bin(x)
        self.data[0, b] += weight
        self.data[1, b] += weight * value
        self.data[2, b] += weight * value * value
        self.total_entries += 1

    def lookup(self, x: float) -> float:
        b = self.axis.find_bin(x)
        return float(_safe_mean(self.data[1, b], self.data[0, b]))

    def entries(self, x: float) -> float:
        return float(self.data[0, self.axis.find_bin(x)])

    @property
    def means(self) -> np.ndarray:
        """In-range bin means (no under/overflow)."""
        return _safe_mean(self.data[1, 1:-1], self.data[0, 1:-1])

    def to_variables(self) -> dict:
        return {
            "entries": xr.DataArray(self.data[0], dims=("bin",)),
            "sum": xr.DataArray(self.data[1], dims=("bin",)),
            "sum2": xr.DataArray(self.data[2], dims=("bin",)),
        }

    def attrs(self) -> dict:
        attrs = super().attrs()
        attrs.update(axis_attrs("x", self.axis))
        attrs["variable"] = self.variable
        return attrs

    @classmethod
    def from_variables(cls, name: str, variables: dict, attrs: dict) -> "AxisProfileTable":
        table = cls(name, axis_from_attrs("x", attrs), str(attrs["variable"]))
        table.data = np.stack([
            variables["entries"].values,
            variables["sum"].values,
            variables["sum2"].values,
        ]).astype(float)
        table.total_entries = int(attrs["total_entries"])
        return table


JOINT_AXES = ("centrality", "vx", "vy", "vz")


class JointSparseTable(CalibrationTable):
    """Q-vector statistics per (centrality, vx, vy, vz) cell.

    Only populated cells are stored. A value outside the Q axis range is
    counted in ``total_entries`` but does not enter any cell, the same way
    a projection onto the Q axis drops its under/overflow.
    """

    kind = "joint_sparse"

    def __init__(self, name: str, centrality_axis: Axis, vx_axis: Axis,
                 vy_axis: Axis, vz_axis: Axis, q_axis: Axis):
        super().__init__(name)
        self.axes = (centrality_axis, vx_axis, vy_axis, vz_axis)
        self.q_axis = q_axis
        self._cells: Dict[Tuple[int, int, int, int], np.ndarray] = {}

    def cell_of(self, centrality: float, vx: float, vy: float, vz: float) -> tuple:
        return tuple(axis.find_bin(x) for axis, x in zip(self.axes, (centrality, vx, vy, vz)))

    def fill(self, centrality: float, vx: float, vy: float, vz: float,
             q: float, weight: float = 1.0) -> None:
        self.total_entries += 1
        if not self.q_axis.contains(q):
            return
        cell = self._cells.setdefault(self.cell_of(centrality, vx, vy, vz), np.zeros(3))
        cell += (weight, weight * q, weight * q * q)

    def lookup(self, centrality: float, vx: float, vy: float, vz: float) -> SparseBin:
        cell = self._cells.get(self.cell_of(centrality, vx, vy, vz))
        if cell is None:
            return SparseBin(0.0, 0)
        return SparseBin(float(_safe_mean(cell[1], cell[0])), int(round(cell[0])))

    @property
    def n_cells(self) -> int:
        return len(self._cells)

    def to_variables(self) -> dict:
        keys = sorted(self._cells)
        index = np.asarray(keys, dtype=np.int64).reshape(len(keys), 4)
        data = np.stack([self._cells[k] for k in keys]) if keys else np.zeros((0, 3))
        return {
            "index": xr.DataArray(index, dims=("cell", "coord")),
            "entries": xr.DataArray(data[:, 0], dims=("cell",)),
            "sum": xr.DataArray(data[:, 1], dims=("cell",)),
            "sum2": xr.DataArray(data[:, 2], dims=("cell",)),
        }

    def attrs(self) -> dict:
        attrs = super().attrs()
        for label, axis in zip(JOINT_AXES, self.axes):
            attrs.update(axis_attrs(label, axis))
        attrs.update(axis_attrs("q", self.q_axis))
        return attrs

    @classmethod
    def from_variables(cls, name: str, variables: dict, attrs: dict) -> "JointSparseTable":
        axes = [axis_from_attrs(label, attrs) for label in JOINT_AXES]
        table = cls(name, *axes, q_axis=axis_from_attrs("q", attrs))
        index = variables["index"].values
        entries = variables["entries"].values
        sums = variables["sum"].values
        sums2 = variables["sum2"].values
        for i in range(index.shape[0]):
            key = tuple(int(v) for v in index[i])
            table._cells[key] = np.array([entries[i], sums[i], sums2[i]], dtype=float)
        table.total_entries = int(attrs["total_entries"])
        return table


TABLE_KINDS = {
    cls.kind: cls
    for cls in (RunCentralityTable, RunProfileTable, AxisProfileTable, JointSparseTable)
}
