"""Output record contract.

Downstream consumers key on reached_iteration/reached_step to interpret
the vector, so these must always be consistent.
"""

import math
from zdcq.contracts.base import require


def assert_output_record(record) -> None:
    """Enforce output record contract.

    Parameters
    ----------
    record : OutputRecord
        Record produced by EventProcessor.process_event()

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        0 <= record.reached_iteration <= 5,
        f"Output contract violated: reached_iteration={record.reached_iteration}"
    )
    require(
        0 <= record.reached_step <= 5,
        f"Output contract violated: reached_step={record.reached_step}"
    )
    require(
        record.reached_iteration > 0 or record.reached_step == 0,
        f"Output contract violated: step {record.reached_step} reported without recentering"
    )

    q = (record.qxa, record.qya, record.qxc, record.qyc)
    require(
        all(math.isfinite(c) for c in q),
        f"Output contract violated: non-finite Q-vector {q}"
    )