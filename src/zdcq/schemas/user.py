"""UserConfig: the flat settings a user puts in a config file.

Keys are written upper-case in ``CONFIG`` dicts (``INPUT_PATH``,
``CALIBRATION_DIR``, ``MIN_ENTRIES_SPARSE_BIN``); lower-case field names are
accepted as well. Unknown keys are ignored. A value left as ``None`` keeps
the expert default; an empty string for a calibration identifier switches
that calibration off.
"""

from typing import Optional, Any
from pydantic import Field, field_validator
from zdcq.schemas.base import ZdcqBaseModel


class UserCalibrationConfig(ZdcqBaseModel):
    """User-facing calibration config."""
    energy: Optional[str] = None
    mean_vertex: Optional[str] = None
    recentering: Optional[list[list[Optional[str]]]] = None
    min_entries_sparse_bin: Optional[int] = None
    directory: Optional[str] = None


class UserSelectionConfig(ZdcqBaseModel):
    """User-facing selection config."""
    centrality_min: Optional[float] = None
    centrality_max: Optional[float] = None

    @field_validator("centrality_min", "centrality_max", mode="before")
    @classmethod
    def coerce_float(cls, v):
        """Accept int or float for centrality limits."""
        if v is not None:
            return float(v)
        return v


class UserOutputConfig(ZdcqBaseModel):
    """User-facing output config."""
    compression: Optional[str] = None
    save_statistics: Optional[bool] = None

    @field_validator("compression", mode="before")
    @classmethod
    def normalize_compression(cls, v):
        """Normalize codec names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class UserConfig(ZdcqBaseModel):
    """Overrides read from a user config file.

    Flattened for convenience; ``to_internal_overrides`` maps the fields
    back onto the nested InternalConfig layout.

    Usage
    -----
        user_cfg = UserConfig(
            base_dir="/data/zdcq",
            input_path="/data/events/LHC23zzh.parquet",
            calibration_dir="/data/calibration",
            min_entries_sparse_bin=50,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Job settings
    base_dir: Optional[str] = Field(None, alias="BASE_DIR")
    input_path: Optional[str] = Field(None, alias="INPUT_PATH")

    # Calibration settings (flat aliases)
    calibration_dir: Optional[str] = Field(None, alias="CALIBRATION_DIR")
    energy_calibration: Optional[str] = Field(None, alias="ENERGY_CALIBRATION")
    mean_vertex_calibration: Optional[str] = Field(None, alias="MEAN_VERTEX_CALIBRATION")
    recentering: Optional[list[list[Optional[str]]]] = Field(None, alias="RECENTERING")
    min_entries_sparse_bin: Optional[int] = Field(None, alias="MIN_ENTRIES_SPARSE_BIN")

    # Logging (flat alias)
    log_level: Optional[str] = Field(None, alias="LOG_LEVEL")

    # Nested overrides (advanced users)
    axes: Optional[dict[str, Any]] = None
    selection: Optional[UserSelectionConfig] = None
    calibration: Optional[UserCalibrationConfig] = None
    output: Optional[UserOutputConfig] = None

    model_config = ZdcqBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept any case for the log level."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)
        if self.input_path is not None:
            overrides["input_path"] = str(self.input_path)

        # Calibration section
        calibration = {}
        if self.calibration_dir is not None:
            calibration["directory"] = str(self.calibration_dir)
        if self.energy_calibration is not None:
            calibration["energy"] = self.energy_calibration
        if self.mean_vertex_calibration is not None:
            calibration["mean_vertex"] = self.mean_vertex_calibration
        if self.recentering is not None:
            calibration["recentering"] = self.recentering
        if self.min_entries_sparse_bin is not None:
            calibration["min_entries_sparse_bin"] = self.min_entries_sparse_bin

        # Merge with explicit calibration config
        if self.calibration is not None:
            calibration.update(self.calibration.model_dump(exclude_none=True))

        if calibration:
            overrides["calibration"] = calibration

        if self.axes is not None:
            overrides["axes"] = self.axes

        if self.selection is not None:
            selection = self.selection.model_dump(exclude_none=True)
            if selection:
                overrides["selection"] = selection

        if self.output is not None:
            output = self.output.model_dump(exclude_none=True)
            if output:
                overrides["output"] = output

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
