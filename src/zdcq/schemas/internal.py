"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on
(calibration identifiers stay optional: None means the family is disabled).

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict
from zdcq.schemas.base import ZdcqBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalAxisConfig(ZdcqBaseModel):
    """Runtime axis binning."""
    nbins: int
    low: float
    high: float


class InternalAxesConfig(ZdcqBaseModel):
    """Runtime binning of accumulators and calibration tables."""
    centrality: InternalAxisConfig
    centrality_coarse: InternalAxisConfig
    q: InternalAxisConfig
    psi: InternalAxisConfig
    vx_coarse: InternalAxisConfig
    vy_coarse: InternalAxisConfig
    vz_coarse: InternalAxisConfig
    vx: InternalAxisConfig
    vy: InternalAxisConfig
    vz: InternalAxisConfig


class InternalSelectionConfig(ZdcqBaseModel):
    """Runtime event selection."""
    centrality_min: float
    centrality_max: float


class InternalCalibrationConfig(ZdcqBaseModel):
    """Runtime calibration configuration."""
    energy: Optional[str]
    mean_vertex: Optional[str]
    recentering: list[list[Optional[str]]]
    min_entries_sparse_bin: int
    directory: Optional[str]


class InternalOutputConfig(ZdcqBaseModel):
    """Runtime output configuration."""
    compression: Literal["snappy", "gzip", "lz4", "zstd", "none"]
    save_statistics: bool


class InternalLoggingConfig(ZdcqBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    max_repeats: Optional[int]


class InternalProcessorConfig(ZdcqBaseModel):
    """Runtime processor configuration."""
    queue_size: int = Field(default=1000, ge=1)


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(ZdcqBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated and immutable.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.min_entries = config.calibration.min_entries_sparse_bin  # NOT .get()

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO type checking
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    base_dir: Optional[str]
    input_path: Optional[str]
    axes: InternalAxesConfig
    selection: InternalSelectionConfig
    calibration: InternalCalibrationConfig
    output: InternalOutputConfig
    logging: InternalLoggingConfig
    processor: InternalProcessorConfig = Field(default_factory=InternalProcessorConfig)

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
