"""Pydantic configuration schemas for the zdcq pipeline.

All configuration validation, coercion, and normalization happens at
schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from zdcq.schemas.resolve import resolve_config
from zdcq.schemas.internal import InternalConfig
from zdcq.schemas.param import ParamConfig
from zdcq.schemas.user import UserConfig
from zdcq.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
