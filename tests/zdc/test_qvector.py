"""Q-vector computation, event-plane angles and gain equalisation."""

import math

import numpy as np
import pytest

from zdcq.calibration.naming import ENERGY_TABLE_NAMES
from zdcq.calibration.sources import InMemoryCalibrationSource
from zdcq.calibration.store import CalibrationStore
from zdcq.calibration.tables import RunCentralityTable
from zdcq.zdc.equalizer import EnergyEqualizer, side_is_hit
from zdcq.zdc.geometry import ALPHA, side_of_tower
from zdcq.zdc.qvector import compute_qvector, event_plane_angles, tower_weights
from zdcq.zdc.vertex import MeanVertexCorrector

from tests.helpers.fake_calibration import RUN, TIMESTAMP, energy_tables, vertex_tables

pytestmark = pytest.mark.unit


class TestQVector:

    def test_symmetric_energies_give_zero(self):
        np.testing.assert_allclose(compute_qvector(np.full(8, 5.0)), np.zeros(4), atol=1e-12)

    def test_single_tower_side_c(self):
        """Only sector 1 of side C lit: centroid sits on that sector."""
        energies = np.zeros(8)
        energies[4 + 1] = 3.0
        q = compute_qvector(energies)

        np.testing.assert_allclose(q, [0.0, 0.0, 1.75, -1.75])

    def test_side_a_x_is_mirrored(self):
        energies = np.zeros(8)
        energies[1] = 3.0
        energies[4 + 1] = 3.0
        q = compute_qvector(energies)

        assert q[0] == pytest.approx(-q[2])
        assert q[1] == pytest.approx(q[3])

    def test_weights_use_energy_power(self):
        energies = np.array([1.0, 4.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0])
        w = tower_weights(energies)
        expected_x = -(-1.75 * w[0] + 1.75 * w[1]) / (w[0] + w[1])

        assert w[1] == pytest.approx(4.0 ** ALPHA)
        assert compute_qvector(energies)[0] == pytest.approx(expected_x)

    def test_negative_energy_weighs_zero(self):
        assert tower_weights([-3.0])[0] == 0.0

    def test_empty_side_stays_zero(self):
        energies = np.array([0, 0, 0, 0, 1.0, 2.0, 3.0, 4.0])
        q = compute_qvector(energies)

        assert q[0] == 0.0 and q[1] == 0.0
        assert np.all(np.isfinite(q))

    def test_components_bounded_by_geometry(self):
        rng = np.random.default_rng(3)
        for _ in range(20):
            q = compute_qvector(rng.uniform(0, 100, 8))
            assert np.all(np.abs(q) <= 1.75 + 1e-12)

    def test_side_of_tower(self):
        assert [side_of_tower(t) for t in range(8)] == [0, 0, 0, 0, 1, 1, 1, 1]


class TestEventPlane:

    def test_angles_use_matching_components(self):
        psi_a, psi_c, psi_full = event_plane_angles([1.0, 1.0, -1.0, 0.0])

        assert psi_a == pytest.approx(math.pi / 4)
        assert psi_c == pytest.approx(math.pi)
        assert psi_full == pytest.approx(math.pi / 2)

    def test_zero_vector(self):
        assert event_plane_angles([0, 0, 0, 0]) == (0.0, 0.0, 0.0)


class TestSideIsHit:

    def test_all_positive(self):
        assert side_is_hit([1, 2, 3, 4], 5.0)

    def test_zero_sector(self):
        assert not side_is_hit([1, 0, 3, 4], 5.0)

    def test_zero_common(self):
        assert not side_is_hit([1, 2, 3, 4], 0.0)


def _store(config, tables):
    source = InMemoryCalibrationSource()
    source.add(config.calibration.energy, tables)
    source.add(config.calibration.mean_vertex, vertex_tables(mean_vx=0.001, mean_vy=-0.002))
    store = CalibrationStore(config, source)
    assert store.load_energy(TIMESTAMP)
    assert store.load_mean_vertex(TIMESTAMP)
    return store


class TestEqualizer:

    def test_unit_gain_keeps_energies(self, internal_config):
        store = _store(internal_config, energy_tables(internal_config))
        raw = np.arange(1.0, 9.0)

        np.testing.assert_allclose(EnergyEqualizer(store).equalize(raw, RUN, 25.0), raw)

    def test_gain_formula(self, internal_config):
        tables = energy_tables(internal_config, common=40.0, tower=5.0)
        store = _store(internal_config, tables)
        raw = np.full(8, 2.0)

        # 2 * 0.25 * 40 / 5
        np.testing.assert_allclose(EnergyEqualizer(store).equalize(raw, RUN, 25.0), np.full(8, 4.0))

    def test_tower_without_mean_is_zero(self, internal_config):
        tables = energy_tables(internal_config)
        tables[ENERGY_TABLE_NAMES[7]] = RunCentralityTable(ENERGY_TABLE_NAMES[7], tables[ENERGY_TABLE_NAMES[7]].axis)
        tables[ENERGY_TABLE_NAMES[7]].fill(RUN, 80.0, 1.0)
        store = _store(internal_config, tables)

        out = EnergyEqualizer(store).equalize(np.ones(8), RUN, 25.0)

        # tower 7 is side C sector 1 (output index 5)
        assert out[5] == 0.0
        assert out[4] == pytest.approx(1.0)

    def test_mean_energies(self, internal_config):
        store = _store(internal_config, energy_tables(internal_config, common=8.0, tower=2.0))
        means = EnergyEqualizer(store).mean_energies(RUN, 25.0)

        assert means.shape == (10,)
        assert means[0] == means[5] == pytest.approx(8.0)
        assert means[1] == pytest.approx(2.0)

    def test_vertex_correction(self, internal_config):
        store = _store(internal_config, energy_tables(internal_config))
        vx, vy, vz = MeanVertexCorrector(store).correct(RUN, 0.003, 0.0, 4.0)

        assert vx == pytest.approx(0.002)
        assert vy == pytest.approx(0.002)
        assert vz == 4.0
