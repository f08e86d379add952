"""Pipeline modules.

- orchestrator: Main pipeline controller
- processor: Per-event Q-vector processor thread
- statistics: QA and bootstrap statistics registry
- output: Per-event output table
"""

from zdcq.pipeline.orchestrator import PipelineOrchestrator
from zdcq.pipeline.processor import EventProcessor
from zdcq.pipeline.statistics import StatisticsRegistry
from zdcq.pipeline.output import OutputTable

__all__ = [
    "PipelineOrchestrator",
    "EventProcessor",
    "StatisticsRegistry",
    "OutputTable",
]
