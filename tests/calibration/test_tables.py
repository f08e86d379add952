"""Calibration table variants: filling and lookup."""

import math

import numpy as np
import pytest

from zdcq.calibration.tables import (
    AxisProfileTable,
    JointSparseTable,
    RunCentralityTable,
    RunProfileTable,
    SparseBin,
    TABLE_KINDS,
)
from zdcq.core.histograms import Axis

pytestmark = pytest.mark.unit


def _joint(name="hQXA_mean_Cent_V_run"):
    return JointSparseTable(
        name,
        Axis(9, 0, 90),
        Axis(3, -0.01, 0.01),
        Axis(3, -0.01, 0.01),
        Axis(3, -10, 10),
        q_axis=Axis(100, -2, 2),
    )


class TestRunCentralityTable:

    def test_mean_per_run_and_bin(self):
        table = RunCentralityTable("hZNA_mean_t1_cent", Axis(90, 0, 90))
        table.fill(100, 10.2, 2.0)
        table.fill(100, 10.8, 4.0)
        table.fill(101, 10.5, 7.0)

        assert table.lookup(100, 10.5) == pytest.approx(3.0)
        assert table.lookup(101, 10.1) == pytest.approx(7.0)
        assert table.entries(100, 10.0) == 2
        assert table.runs == [100, 101]
        assert table.total_entries == 3

    def test_empty_bin_and_unknown_run_are_zero(self):
        table = RunCentralityTable("t", Axis(90, 0, 90))
        table.fill(100, 10.5, 2.0)

        assert table.lookup(100, 50.0) == 0.0
        assert table.lookup(999, 10.5) == 0.0

    def test_is_empty(self):
        table = RunCentralityTable("t", Axis(90, 0, 90))
        assert table.is_empty()
        table.fill(1, 5.0, 1.0)
        assert not table.is_empty()


class TestRunProfileTable:

    def test_mean_per_run(self):
        table = RunProfileTable("hvertex_vx")
        for value in (0.001, 0.003):
            table.fill(7, value)

        assert table.lookup(7) == pytest.approx(0.002)
        assert table.lookup(8) == 0.0
        assert table.entries(7) == 2


class TestAxisProfileTable:

    def test_mean_per_bin(self):
        table = AxisProfileTable("hQXA_mean_vz_run", Axis(10, -10, 10), "vz")
        table.fill(1.5, 0.2)
        table.fill(1.9, 0.4)

        assert table.lookup(1.0) == pytest.approx(0.3)
        assert table.lookup(-5.0) == 0.0
        assert table.entries(1.2) == 2
        assert table.variable == "vz"

    def test_means_exclude_under_overflow(self):
        table = AxisProfileTable("p", Axis(4, 0, 4), "centrality")
        table.fill(-1, 10.0)
        table.fill(0.5, 1.0)
        table.fill(100, 10.0)

        np.testing.assert_allclose(table.means, [1.0, 0.0, 0.0, 0.0])


class TestJointSparseTable:

    def test_cell_mean_and_entries(self):
        table = _joint()
        table.fill(25.0, 0.0, 0.0, 1.0, 0.1)
        table.fill(26.0, 0.001, -0.001, 2.0, 0.3)

        cell = table.lookup(21.0, 0.0, 0.0, 0.5)
        assert isinstance(cell, SparseBin)
        assert cell.entries == 2
        assert cell.mean == pytest.approx(0.2)
        assert table.n_cells == 1

    def test_missing_cell_is_empty(self):
        table = _joint()
        table.fill(25.0, 0.0, 0.0, 1.0, 0.1)

        assert table.lookup(75.0, 0.0, 0.0, 1.0) == SparseBin(0.0, 0)

    def test_weighted_fill(self):
        table = _joint()
        table.fill(5.0, 0.0, 0.0, 0.0, -0.5, weight=100)

        assert table.lookup(5.0, 0.0, 0.0, 0.0) == SparseBin(-0.5, 100)
        assert table.total_entries == 1

    def test_values_outside_q_axis_are_counted_but_not_binned(self):
        table = _joint()
        table.fill(25.0, 0.0, 0.0, 1.0, 5.0)

        assert table.total_entries == 1
        assert not table.is_empty()
        assert table.lookup(25.0, 0.0, 0.0, 1.0).entries == 0

    def test_vertex_overflow_has_own_cell(self):
        table = _joint()
        table.fill(25.0, 0.0, 0.0, 15.0, 0.2)

        assert table.lookup(25.0, 0.0, 0.0, 11.0).entries == 1
        assert table.lookup(25.0, 0.0, 0.0, 1.0).entries == 0

    def test_nan_coordinate_lands_in_underflow(self):
        table = _joint()
        table.fill(25.0, math.nan, 0.0, 1.0, 0.2)

        assert table.cell_of(25.0, math.nan, 0.0, 1.0)[1] == 0


def test_kind_registry():
    assert set(TABLE_KINDS) == {"run_centrality", "run_profile", "axis_profile", "joint_sparse"}
