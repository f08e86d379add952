"""Binned axes and plain counting histograms.

Binning convention (shared with every calibration table):

- bin 0 is the underflow bin (``x < low``, and NaN)
- bins 1..nbins cover ``[low, high)``
- bin nbins + 1 is the overflow bin (``x >= high``)

Each histogram keeps under/overflow so that its entry count equals the
number of fills, which is what calibration validation checks.
"""

import numpy as np
import xarray as xr


class Axis:
    """Uniform binning between ``low`` and ``high``."""

    def __init__(self, nbins: int, low: float, high: float):
        if nbins < 1:
            raise ValueError(f"Axis needs at least one bin, got {nbins}")
        if high <= low:
            raise ValueError(f"Axis upper edge {high} must exceed lower edge {low}")
        self.nbins = int(nbins)
        self.low = float(low)
        self.high = float(high)

    @classmethod
    def from_config(cls, cfg) -> "Axis":
        """Build from an ``InternalAxisConfig`` (or anything with nbins/low/high)."""
        return cls(cfg.nbins, cfg.low, cfg.high)

    @property
    def width(self) -> float:
        return (self.high - self.low) / self.nbins

    @property
    def edges(self) -> np.ndarray:
        return np.linspace(self.low, self.high, self.nbins + 1)

    @property
    def centers(self) -> np.ndarray:
        edges = self.edges
        return 0.5 * (edges[:-1] + edges[1:])

    def find_bin(self, x: float) -> int:
        """Return the bin index of ``x`` including under/overflow."""
        if not x >= self.low:
            return 0
        if x >= self.high:
            return self.nbins + 1
        # float rounding at the upper edge stays in range
        return min(1 + int((x - self.low) / self.width), self.nbins)

    def contains(self, x: float) -> bool:
        return 1 <= self.find_bin(x) <= self.nbins

    def spec(self) -> tuple:
        return (self.nbins, self.low, self.high)

    def __eq__(self, other):
        return isinstance(other, Axis) and self.spec() == other.spec()

    def __repr__(self):
        return f"Axis({self.nbins}, {self.low}, {self.high})"


def axis_attrs(prefix: str, axis: Axis) -> dict:
    """Flatten an axis into netCDF-safe attributes."""
    return {
        f"{prefix}_nbins": axis.nbins,
        f"{prefix}_low": axis.low,
        f"{prefix}_high": axis.high,
    }


def axis_from_attrs(prefix: str, attrs: dict) -> Axis:
    return Axis(int(attrs[f"{prefix}_nbins"]), float(attrs[f"{prefix}_low"]), float(attrs[f"{prefix}_high"]))


class Hist1D:
    """Counting histogram over one axis."""

    kind = "hist1d"

    def __init__(self, name: str, axis: Axis):
        self.name = name
        self.axis = axis
        self.counts = np.zeros(axis.nbins + 2)
        self.total_entries = 0

    def fill(self, x: float, weight: float = 1.0) -> None:
        self.counts[self.axis.find_bin(x)] += weight
        self.total_entries += 1

    def content(self, x: float) -> float:
        return float(self.counts[self.axis.find_bin(x)])

    def to_variables(self) -> dict:
        return {"counts": xr.DataArray(self.counts, dims=("bin",))}

    def attrs(self) -> dict:
        attrs = axis_attrs("x", self.axis)
        attrs["total_entries"] = self.total_entries
        return attrs

    @classmethod
    def from_variables(cls, name: str, variables: dict, attrs: dict) -> "Hist1D":
        hist = cls(name, axis_from_attrs("x", attrs))
        hist.counts = np.asarray(variables["counts"].values, dtype=float)
        hist.total_entries = int(attrs["total_entries"])
        return hist


class Hist2D:
    """Counting histogram over two axes (QA scatter plots)."""

    kind = "hist2d"

    def __init__(self, name: str, xaxis: Axis, yaxis: Axis):
        self.name = name
        self.xaxis = xaxis
        self.yaxis = yaxis
        self.counts = np.zeros((xaxis.nbins + 2, yaxis.nbins + 2))
        self.total_entries = 0

    def fill(self, x: float, y: float, weight: float = 1.0) -> None:
        self.counts[self.xaxis.find_bin(x), self.yaxis.find_bin(y)] += weight
        self.total_entries += 1

    def content(self, x: float, y: float) -> float:
        return float(self.counts[self.xaxis.find_bin(x), self.yaxis.find_bin(y)])

    def to_variables(self) -> dict:
        return {"counts": xr.DataArray(self.counts, dims=("xbin", "ybin"))}

    def attrs(self) -> dict:
        attrs = axis_attrs("x", self.xaxis)
        attrs.update(axis_attrs("y", self.yaxis))
        attrs["total_entries"] = self.total_entries
        return attrs

    @classmethod
    def from_variables(cls, name: str, variables: dict, attrs: dict) -> "Hist2D":
        hist = cls(name, axis_from_attrs("x", attrs), axis_from_attrs("y", attrs))
        hist.counts = np.asarray(variables["counts"].values, dtype=float)
        hist.total_entries = int(attrs["total_entries"])
        return hist
