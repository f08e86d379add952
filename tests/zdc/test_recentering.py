"""Iterative recentering: stage grid, corrections and sparse bins."""

import logging

import numpy as np
import pytest

from zdcq.calibration.store import CalibrationStore, Frontier
from zdcq.contracts import CalibrationLookupError
from zdcq.zdc.recentering import RecenteringEngine, StageGrid

from tests.helpers.fake_calibration import TIMESTAMP, all_slots, make_event, make_source

pytestmark = pytest.mark.unit

RAW = np.array([0.5, -0.25, 0.125, 1.0])
CORRECTION = (0.01, -0.02, 0.03, -0.04)


def _engine(config, slots, correction=CORRECTION, **table_kwargs):
    event = make_event()
    store = CalibrationStore(config, make_source(config, slots=slots, correction=correction,
                                                 event=event, **table_kwargs))
    frontier = store.load_recentering(TIMESTAMP)
    engine = RecenteringEngine(store, config.calibration.min_entries_sparse_bin)
    return engine, frontier, event


class TestStageGrid:

    def test_raw_stage(self):
        grid = StageGrid(RAW)
        np.testing.assert_array_equal(grid.raw, RAW)
        np.testing.assert_array_equal(grid.at(Frontier(0, 0)), RAW)

    def test_first_iteration_starts_from_raw(self):
        grid = StageGrid(RAW)
        grid.begin_iteration(1)
        np.testing.assert_array_equal(grid.stage(1, 0), RAW)

    def test_later_iteration_starts_from_previous_end(self):
        grid = StageGrid(RAW)
        grid.values[1, 5] = [1, 2, 3, 4]
        grid.begin_iteration(2)
        np.testing.assert_array_equal(grid.stage(2, 0), [1, 2, 3, 4])

    def test_apply_writes_next_stage(self):
        grid = StageGrid(RAW)
        grid.begin_iteration(1)
        out = grid.apply(1, 0, [0.5, 0.5, 0.5, 0.5])

        np.testing.assert_allclose(out, RAW - 0.5)
        np.testing.assert_allclose(grid.stage(1, 1), RAW - 0.5)


class TestRecenteringEngine:

    def test_no_slots_returns_raw(self, internal_config):
        engine, frontier, event = _engine(internal_config, [])
        grid, selected = engine.run(RAW, frontier, event.centrality, event.vx, event.vy, event.vz)

        assert frontier == Frontier(0, 0)
        assert selected
        np.testing.assert_array_equal(grid.at(frontier), RAW)

    def test_single_step(self, internal_config):
        engine, frontier, event = _engine(internal_config, [(1, 0)])
        grid, selected = engine.run(RAW, frontier, event.centrality, event.vx, event.vy, event.vz)

        assert frontier == Frontier(1, 1)
        assert selected
        np.testing.assert_allclose(grid.at(frontier), RAW - np.array(CORRECTION))

    def test_constant_correction_all_slots(self, internal_config):
        """25 constant corrections subtract exactly 25 times."""
        engine, frontier, event = _engine(internal_config, all_slots())
        grid, selected = engine.run(RAW, frontier, event.centrality, event.vx, event.vy, event.vz)

        assert frontier == Frontier(5, 5)
        assert selected
        np.testing.assert_allclose(grid.at(frontier), RAW - 25 * np.array(CORRECTION), atol=1e-12)

    def test_stage_chain(self, internal_config):
        engine, frontier, event = _engine(internal_config, all_slots()[:7])
        grid, _ = engine.run(RAW, frontier, event.centrality, event.vx, event.vy, event.vz)
        corr = np.array(CORRECTION)

        assert frontier == Frontier(2, 2)
        np.testing.assert_allclose(grid.stage(1, 5), RAW - 5 * corr)
        np.testing.assert_allclose(grid.stage(2, 0), grid.stage(1, 5))
        np.testing.assert_allclose(grid.stage(2, 2), RAW - 7 * corr)

    def test_sparse_bin_deselects_and_zeroes(self, internal_config):
        engine, frontier, event = _engine(
            internal_config, [(1, 0), (1, 1)],
            entries=internal_config.calibration.min_entries_sparse_bin - 1,
        )
        grid, selected = engine.run(RAW, frontier, event.centrality, event.vx, event.vy, event.vz)

        assert frontier == Frontier(1, 2)
        assert not selected
        # step 0 contributed nothing, step 1 still applied
        np.testing.assert_allclose(grid.stage(1, 1), RAW)
        np.testing.assert_allclose(grid.at(frontier), RAW - np.array(CORRECTION))

    def test_event_in_unfilled_cell(self, internal_config):
        engine, frontier, _ = _engine(internal_config, [(1, 0)])
        values, selected = engine.correction(1, 0, 85.0, 0.0, 0.0, 1.0)

        assert not selected
        np.testing.assert_array_equal(values, np.zeros(4))

    def test_profile_empty_bin_corrects_zero(self, internal_config):
        engine, frontier, _ = _engine(internal_config, [(1, 0), (1, 1), (1, 2)])
        values, selected = engine.correction(1, 2, 25.0, 0.009, 0.0, 1.0)

        assert selected
        np.testing.assert_array_equal(values, np.zeros(4))

    def test_sparse_message_rate_limited(self, internal_config, caplog):
        engine, frontier, event = _engine(
            internal_config, [(1, 0)],
            entries=internal_config.calibration.min_entries_sparse_bin - 1,
        )

        with caplog.at_level(logging.DEBUG, logger="zdcq"):
            for _ in range(3):
                engine.run(RAW, frontier, event.centrality, event.vx, event.vy, event.vz)

        sparse = [r for r in caplog.records if "Sparse bin" in r.getMessage()]
        assert len(sparse) == 1

    def test_unloaded_slot_raises_lookup_error(self, internal_config):
        engine, _, event = _engine(internal_config, [(1, 0)])

        with pytest.raises(CalibrationLookupError):
            engine.run(RAW, Frontier(1, 2), event.centrality, event.vx, event.vy, event.vz)
