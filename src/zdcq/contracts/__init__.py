"""Pipeline contracts: fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when a stage does not produce its
promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Per-event rejections (centrality, unhit sides, sparse bins) are physics,
  not contract violations, and never raise
"""

from zdcq.contracts.failure import ContractViolation, CalibrationLookupError, FailurePolicy
from zdcq.contracts.base import require
from zdcq.contracts.energy import assert_equalized
from zdcq.contracts.recentering import assert_stage_vector, assert_frontier
from zdcq.contracts.output import assert_output_record

__all__ = [
    "ContractViolation",
    "CalibrationLookupError",
    "FailurePolicy",
    "require",
    "assert_equalized",
    "assert_stage_vector",
    "assert_frontier",
    "assert_output_record",
]
