"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: input file, output and calibration directories, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from zdcq.schemas.base import ZdcqBaseModel


class CLIConfig(ZdcqBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            input_path="/data/events/run544124.parquet",
            base_dir="/scratch/zdcq_output",
            log_level="DEBUG",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    base_dir: Optional[str] = None
    input_path: Optional[str] = None
    calibration_dir: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

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

        if self.calibration_dir is not None:
            overrides["calibration"] = {"directory": str(self.calibration_dir)}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
