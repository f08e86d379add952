"""Per-event Q-vector processing.

Takes one collision through selection, gain equalisation, Q-vector
computation, mean-vertex subtraction and recentering, fills the statistics
registry and appends one OutputRecord.
"""

import logging
import queue
import threading
from typing import Optional, TYPE_CHECKING

import numpy as np

from zdcq.calibration.store import CalibrationStore
from zdcq.contracts import (
    ContractViolation,
    assert_equalized,
    assert_frontier,
    assert_output_record,
    assert_stage_vector,
)
from zdcq.core.events import CollisionEvent, OutputRecord
from zdcq.core.log_once import RateLimitedLogger
from zdcq.pipeline.output import OutputTable
from zdcq.pipeline.statistics import StatisticsRegistry
from zdcq.zdc.equalizer import EnergyEqualizer, side_is_hit
from zdcq.zdc.qvector import compute_qvector
from zdcq.zdc.recentering import RecenteringEngine
from zdcq.zdc.vertex import MeanVertexCorrector

if TYPE_CHECKING:
    from zdcq.schemas import InternalConfig

__all__ = ['EventProcessor']

logger = logging.getLogger(__name__)


class EventProcessor(threading.Thread):
    """Compute the recentered ZDC Q-vector of each event.

    **Processing Pipeline:**

    For each event, in order:

    1. **Selection**: centrality window and ZDC association. Failing events
       get a zero record with ``selected=False``.

    2. **Calibration slots**: energy (0, 0) and mean vertex (0, 1) are
       loaded for the event timestamp. Without a mean vertex the raw vertex
       is accumulated under ``vmean/`` instead.

    3. **Hit check**: both sides need positive sector and common energies.
       Tower means for the energy calibration are accumulated first.

    4. **Equalisation and raw Q-vector** (stage (0, 0)).

    5. **Recentering** up to the frontier of available slots.

    6. **Statistics and output** for the reached stage.

    **Threading:**

    ``process_event`` can be called directly. Started as a thread, the
    processor drains ``input_queue`` until it receives ``None``. A
    ContractViolation (including CalibrationLookupError) stops the thread
    and is kept in ``self.error`` for the orchestrator.

    Example usage::

        processor = EventProcessor(config, store, registry, output_table)
        record = processor.process_event(event)
    """

    def __init__(self, config: "InternalConfig", store: CalibrationStore,
                 registry: StatisticsRegistry, output_table: OutputTable,
                 input_queue: Optional[queue.Queue] = None,
                 log: Optional[RateLimitedLogger] = None,
                 name: str = "EventProcessor"):
        super().__init__(daemon=True, name=name)

        self.config = config
        self.store = store
        self.registry = registry
        self.output_table = output_table
        self.input_queue = input_queue
        self.log = log or RateLimitedLogger(logger, config.logging.max_repeats)
        self._stop_event = threading.Event()

        self.equalizer = EnergyEqualizer(store)
        self.vertex_corrector = MeanVertexCorrector(store)
        self.engine = RecenteringEngine(store, config.calibration.min_entries_sparse_bin, self.log)

        self.error: Optional[BaseException] = None
        self.processed = 0
        self.failed = 0

    def stop(self):
        """Signal processor to stop gracefully."""
        self._stop_event.set()

    def stopped(self):
        """Check if processor should stop."""
        return self._stop_event.is_set()

    def _emit(self, record: OutputRecord) -> OutputRecord:
        assert_output_record(record)
        self.output_table.append(record)
        self.processed += 1
        return record

    def process_event(self, event: CollisionEvent) -> OutputRecord:
        """Process one event and append its record to the output table.

        Raises
        ------
        CalibrationLookupError
            If a loaded slot does not hold a table it was validated with
        ContractViolation
            If any stage breaks its contract
        """
        selection = self.config.selection
        centrality = event.centrality

        if not (selection.centrality_min <= centrality <= selection.centrality_max):
            return self._emit(OutputRecord.rejected(event))

        self.registry.fill_centrality_before(centrality)

        if not event.has_zdc:
            return self._emit(OutputRecord.rejected(event))

        run = event.run_number
        timestamp = event.timestamp

        energy_ok = self.store.load_energy(timestamp)
        if not energy_ok:
            self.log.info("No energy calibration found: only energy means are accumulated")

        vertex_ok = self.store.load_mean_vertex(timestamp)
        if not vertex_ok:
            self.log.warning("No mean vertex found: vx, vy are used uncorrected (accumulating vmean/)")
            self.registry.fill_vertex(run, event.vx, event.vy, event.vz)

        raw = np.asarray(event.tower_energies, dtype=float)
        hit_a = side_is_hit(raw[:4], event.common_energy_a)
        hit_c = side_is_hit(raw[4:], event.common_energy_c)
        self.registry.fill_energy_means(run, centrality, raw, event.common_energy_a,
                                        event.common_energy_c, hit_a, hit_c)

        if not (hit_a and hit_c) or not energy_ok:
            return self._emit(OutputRecord.rejected(event))

        equalized = self.equalizer.equalize(raw, run, centrality)
        assert_equalized(equalized)
        self.registry.fill_energy_qa(raw, equalized)

        q_raw = compute_qvector(equalized)
        assert_stage_vector(q_raw, 0, 0)

        vx, vy, vz = event.vertex
        if vertex_ok:
            vx, vy, vz = self.vertex_corrector.correct(run, vx, vy, vz)

        frontier = self.store.load_recentering(timestamp)
        assert_frontier(frontier, self.store.is_loaded)
        if frontier.iteration == 0:
            self.log.warning("Recentering calibration missing: output is the Q-vector right after gain equalisation")

        grid, selected = self.engine.run(q_raw, frontier, centrality, vx, vy, vz)

        if selected:
            self.registry.fill_event(grid, frontier, centrality, vx, vy, vz)

        qxa, qya, qxc, qyc = (float(c) for c in grid.at(frontier))
        record = OutputRecord(
            run_number=run,
            centrality=centrality,
            vx=vx, vy=vy, vz=vz,
            qxa=qxa, qya=qya, qxc=qxc, qyc=qyc,
            selected=selected,
            reached_iteration=frontier.iteration,
            reached_step=frontier.step,
        )
        self.log.info("Output created with Q-vectors at iteration %d and step %d",
                      frontier.iteration, frontier.step)
        return self._emit(record)

    def run(self):
        """Main processor loop (runs in thread).

        Reads events from input_queue until None (sentinel) is received.

        Notes
        -----
        Called automatically by thread.start(). Do not call directly.
        """
        if self.input_queue is None:
            raise RuntimeError("EventProcessor started without an input queue")

        logger.info("Processor started, waiting for events...")

        while not self.stopped():
            try:
                event = self.input_queue.get(timeout=1)
            except queue.Empty:
                continue

            try:
                if event is None:
                    break
                self.process_event(event)
            except ContractViolation as e:
                logger.critical("CRITICAL: Pipeline contract violated: %s", e)
                logger.critical("This indicates a bug in pipeline logic. Stopping pipeline.")
                self.error = e
                self.stop()
            except Exception:
                self.failed += 1
                logger.exception("Failed to process event (run %s, timestamp %s)",
                                 getattr(event, "run_number", "?"), getattr(event, "timestamp", "?"))
                # keep one output row per event
                if isinstance(event, CollisionEvent):
                    self.output_table.append(OutputRecord.rejected(event))
            finally:
                # Always mark task as done to prevent queue from blocking
                self.input_queue.task_done()

        logger.info("Processor stopped (%d events, %d failed)", self.processed, self.failed)
