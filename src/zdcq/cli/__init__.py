"""Command-line interface modules for zdcq pipeline execution.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from zdcq.cli.run_qvectors import run_qvector_pipeline

__all__ = ['run_qvector_pipeline']
