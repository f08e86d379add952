"""Centralized failure policy for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception family, allowing the caller to handle pipeline bugs uniformly.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    """Failure policy for contract violations.

    FAIL_FAST (default): Raise immediately on contract violation.
    """
    FAIL_FAST = "fail_fast"


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input or a
    degraded calibration state. It means a pipeline stage did not produce
    the invariants it promised.

    Key distinction:
    - ValueError: User/config error (handled by Pydantic)
    - ContractViolation: Pipeline bug (programmer error)
    - selected=False: Per-event rejection (normal physics outcome)
    """
    pass


class CalibrationLookupError(ContractViolation):
    """A table was requested from a slot that was validated as loaded but
    does not contain it.

    Load-time validation and use-time access disagree. Processing must stop.
    """
    pass
