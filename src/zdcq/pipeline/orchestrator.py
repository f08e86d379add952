"""Pipeline orchestration.

Wires the calibration source, store, statistics registry and processor
thread together, feeds events through a bounded queue and writes results.
"""

import logging
import queue
import time
from pathlib import Path
from typing import Dict, Iterable, Optional, TYPE_CHECKING

import pandas as pd

from zdcq.calibration.sources import (
    CalibrationSource,
    InMemoryCalibrationSource,
    NetCDFCalibrationSource,
)
from zdcq.calibration.store import CalibrationStore
from zdcq.core.log_once import RateLimitedLogger
from zdcq.pipeline.output import OutputTable
from zdcq.pipeline.processor import EventProcessor
from zdcq.pipeline.statistics import StatisticsRegistry
from zdcq.zdc.loader import EventLoader

if TYPE_CHECKING:
    from zdcq.schemas import InternalConfig

__all__ = ['PipelineOrchestrator']

logger = logging.getLogger(__name__)

OUTPUT_FILENAME = "qvectors.parquet"
STATISTICS_FILENAME = "statistics.nc"


class PipelineOrchestrator:
    """Run a batch of events through the Q-vector pipeline.

    **Pipeline Architecture:**

    1. **Calibration source**: ``source`` if given, else a netCDF directory
       source at ``config.calibration.directory``, else an empty in-memory
       source (every slot unavailable, pure bootstrap job).

    2. **Processor thread**: EventProcessor draining a bounded queue of
       CollisionEvents (``config.processor.queue_size``).

    3. **Outputs**:
       - ``output/qvectors.parquet``: one row per event
       - ``qa/statistics.nc``: QA and bootstrap statistics, the input of
         the next calibration round

    **Logging:**

    Console and ``logs/zdcq_<job>.log``, level from ``config.logging.level``.

    Example usage::

        config = resolve_config(ParamConfig(), user_cfg)
        output_dirs = setup_output_directories(config.base_dir)
        df = PipelineOrchestrator(config, output_dirs).run()
    """

    def __init__(self, config: "InternalConfig", output_dirs: Dict[str, Path],
                 source: Optional[CalibrationSource] = None):
        self.config = config
        self.output_dirs = {k: Path(v) for k, v in output_dirs.items()}
        self.source = source

        self.store = None
        self.registry = None
        self.output_table = None
        self.processor = None
        self.event_queue = None

        self._start_time = None

    @property
    def job_name(self) -> str:
        if self.config.input_path:
            return Path(self.config.input_path).stem
        return "events"

    def _setup_logging(self):
        """Configure the root logger with file and console handlers."""
        log_level = getattr(logging, self.config.logging.level, logging.INFO)

        log_dir = self.output_dirs.get("logs", Path("."))
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"zdcq_{self.job_name}.log"

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)

    def _build_source(self) -> CalibrationSource:
        if self.source is not None:
            return self.source
        if self.config.calibration.directory:
            logger.info("Calibration directory: %s", self.config.calibration.directory)
            return NetCDFCalibrationSource(self.config.calibration.directory)
        logger.warning("No calibration source configured: running in bootstrap mode")
        return InMemoryCalibrationSource()

    def _build(self):
        log = RateLimitedLogger(logging.getLogger("zdcq"), self.config.logging.max_repeats)
        self.source = self._build_source()
        self.store = CalibrationStore(self.config, self.source, log)
        self.registry = StatisticsRegistry(self.config)
        self.output_table = OutputTable()
        self.event_queue = queue.Queue(maxsize=self.config.processor.queue_size)
        self.processor = EventProcessor(
            self.config, self.store, self.registry, self.output_table,
            input_queue=self.event_queue, log=log,
        )

    def _put(self, item) -> bool:
        """Queue one item; give up if the processor has died."""
        while self.processor.is_alive():
            try:
                self.event_queue.put(item, timeout=1)
                return True
            except queue.Full:
                continue
        return False

    def run(self, events: Optional[Iterable] = None) -> pd.DataFrame:
        """Process ``events`` (or the events in ``config.input_path``).

        Returns
        -------
        pd.DataFrame
            One row per event, OutputRecord column order

        Raises
        ------
        ContractViolation
            Re-raised from the processor thread (includes CalibrationLookupError)
        ValueError
            If neither events nor ``config.input_path`` is given
        """
        self._setup_logging()
        self._start_time = time.time()

        if events is None:
            if not self.config.input_path:
                raise ValueError("No events given and no input_path configured")
            events = EventLoader().iter_events(EventLoader().read(self.config.input_path))

        logger.info("=" * 60)
        logger.info("Starting ZDC Q-vector pipeline: %s", self.job_name)
        logger.info("=" * 60)

        self._build()
        self.processor.start()

        queued = 0
        try:
            for event in events:
                if not self._put(event):
                    break
                queued += 1
            self._put(None)
            self.processor.join()
        finally:
            self.stop()

        if self.processor.error is not None:
            logger.critical("Pipeline aborted after %d events", self.processor.processed)
            raise self.processor.error

        return self._finalize(queued)

    def stop(self):
        """Stop the processor thread if it is still running."""
        if self.processor is not None and self.processor.is_alive():
            logger.info("Stopping processor thread...")
            self.processor.stop()
            self.processor.join(timeout=10)
            if self.processor.is_alive():
                logger.warning("Processor thread did not stop cleanly")

    def _finalize(self, queued: int) -> pd.DataFrame:
        df = self.output_table.to_dataframe()

        output_dir = self.output_dirs.get("output", Path("."))
        self.output_table.save(output_dir / OUTPUT_FILENAME, self.config.output.compression)

        if self.config.output.save_statistics:
            qa_dir = self.output_dirs.get("qa", Path("."))
            self.registry.save(qa_dir / STATISTICS_FILENAME)

        elapsed = time.time() - self._start_time if self._start_time else 0
        n_selected = int(df["selected"].sum()) if len(df) else 0
        logger.info("=" * 60)
        logger.info("Pipeline finished in %.1f seconds", elapsed)
        logger.info("Statistics: queued=%d, records=%d, selected=%d, failed=%d",
                    queued, len(df), n_selected, self.processor.failed)
        if len(df):
            reached = df[df["selected"]].groupby(["reached_iteration", "reached_step"]).size()
            for (iteration, step), count in reached.items():
                logger.info("  reached (%d, %d): %d events", iteration, step, count)
        logger.info("=" * 60)
        return df
