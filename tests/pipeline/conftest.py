import pytest

from zdcq.calibration.store import CalibrationStore
from zdcq.pipeline.output import OutputTable
from zdcq.pipeline.processor import EventProcessor
from zdcq.pipeline.statistics import StatisticsRegistry


@pytest.fixture
def make_processor():
    """Factory: EventProcessor wired to a fresh store, registry and output table."""
    def _make(config, source):
        store = CalibrationStore(config, source)
        return EventProcessor(config, store, StatisticsRegistry(config), OutputTable())
    return _make

