"""ParamConfig: Expert defaults for the zdcq pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator, model_validator
from zdcq.schemas.base import ZdcqBaseModel


N_ITERATIONS = 5
N_STEPS = 5


def default_recentering_paths() -> list[list[Optional[str]]]:
    """Calibration identifiers for every (iteration, step) recentering slot."""
    return [
        [f"ZDC/recentering/it{iteration}_step{step}" for step in range(1, N_STEPS + 1)]
        for iteration in range(1, N_ITERATIONS + 1)
    ]


# =============================================================================
# Nested Configuration Models
# =============================================================================

class AxisConfig(ZdcqBaseModel):
    """Uniform binning: ``nbins`` bins between ``low`` and ``high``."""
    nbins: int = Field(..., ge=1)
    low: float
    high: float

    @model_validator(mode="after")
    def check_range(self):
        if self.high <= self.low:
            raise ValueError(f"axis upper edge {self.high} must exceed lower edge {self.low}")
        return self


class AxesConfig(ZdcqBaseModel):
    """Binning of every accumulator and calibration table.

    Names and binning must match between the job that fills the statistics
    and the later job that consumes them as calibration tables.
    """
    centrality: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=90, low=0, high=90))
    centrality_coarse: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=9, low=0, high=90))
    q: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=100, low=-2, high=2))
    psi: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=100, low=-4, high=4))
    vx_coarse: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=3, low=-0.01, high=0.01))
    vy_coarse: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=3, low=-0.01, high=0.01))
    vz_coarse: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=3, low=-10, high=10))
    vx: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=10, low=-0.01, high=0.01))
    vy: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=10, low=-0.01, high=0.01))
    vz: AxisConfig = Field(default_factory=lambda: AxisConfig(nbins=10, low=-10, high=10))


class SelectionConfig(ZdcqBaseModel):
    """Event selection applied before energy equalisation."""
    centrality_min: float = Field(0.0, ge=0)
    centrality_max: float = Field(90.0, le=100)

    @model_validator(mode="after")
    def check_window(self):
        if self.centrality_max <= self.centrality_min:
            raise ValueError("centrality_max must exceed centrality_min")
        return self


class CalibrationConfig(ZdcqBaseModel):
    """Calibration identifiers and lookup thresholds.

    An identifier of None disables that calibration family.
    """
    energy: Optional[str] = "ZDC/Energy"
    mean_vertex: Optional[str] = "ZDC/vmean"
    recentering: list[list[Optional[str]]] = Field(default_factory=default_recentering_paths)
    min_entries_sparse_bin: int = Field(100, ge=1, description="Minimal entries in a 4D recentering bin")
    directory: Optional[str] = None

    @field_validator("recentering")
    @classmethod
    def check_grid_shape(cls, v):
        """Exactly 5 iterations of exactly 5 steps."""
        if len(v) != N_ITERATIONS or any(len(steps) != N_STEPS for steps in v):
            raise ValueError(
                f"recentering needs {N_ITERATIONS} iterations with {N_STEPS} identifiers each"
            )
        return v


class OutputConfig(ZdcqBaseModel):
    """Output file configuration."""
    compression: Literal["snappy", "gzip", "lz4", "zstd", "none"] = "snappy"
    save_statistics: bool = True


class LoggingConfig(ZdcqBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    max_repeats: Optional[int] = Field(1, ge=1, description="Emissions per repeated message; None = unlimited")


class ProcessorConfig(ZdcqBaseModel):
    """Event processor configuration."""
    queue_size: int = Field(1000, ge=1)


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(ZdcqBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    base_dir: Optional[str] = None
    input_path: Optional[str] = None
    axes: AxesConfig = Field(default_factory=AxesConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    processor: ProcessorConfig = Field(default_factory=ProcessorConfig)
