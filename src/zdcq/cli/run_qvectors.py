"""Command-line entry point for a Q-vector job.

Argument parsing lives in ``scripts/run_qvector_pipeline.py``; everything
here works on plain values so it can be driven from tests or notebooks.
"""

import json
import logging
import importlib.util
import shutil
from pathlib import Path
from typing import Optional, Dict, Any

import pandas as pd

from zdcq.setup_directories import setup_output_directories
from zdcq.pipeline.orchestrator import PipelineOrchestrator
from zdcq.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig
from zdcq.schemas.internal import InternalConfig


logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Import a user config file and return its ``CONFIG`` dict unvalidated.

    Any module-level dict whose name starts with ``CONFIG`` is accepted, so
    ``CONFIG_RUN3`` style names work too. Raises ``FileNotFoundError`` for a
    missing file and ``ValueError`` when the module defines no such dict.
    """
    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Config not found: {path}")

    module_spec = importlib.util.spec_from_file_location(f"zdcq_user_config_{path.stem}", path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)

    candidates = [getattr(module, name) for name in sorted(vars(module)) if name.startswith('CONFIG')]
    for candidate in candidates:
        if isinstance(candidate, dict):
            return candidate

    raise ValueError(f"No CONFIG dict found in {path}")


def _build_config(user_config_path: str, cli_args: Dict[str, Any], verbose: bool) -> InternalConfig:
    user_cfg = UserConfig.model_validate(load_user_config_dict(user_config_path))

    overrides = {k: v for k, v in cli_args.items() if v is not None}
    if verbose:
        overrides.setdefault("log_level", "DEBUG")
    cli_cfg = CLIConfig.model_validate(overrides)

    return resolve_config(ParamConfig(), user_cfg, cli_cfg)


def _clean_base_dir(base_dir: Optional[str]) -> None:
    if not base_dir:
        return
    path = Path(base_dir)
    if path.exists():
        print(f"Removing previous results in {path}")
        shutil.rmtree(path)


def _print_banner(config: InternalConfig, user_config_path: str, base: Path, verbose: bool) -> None:
    rule = '-' * 60
    calibration = config.calibration.directory or '(none, bootstrap mode)'
    print(f"\n{rule}\nZDC Q-vector job\n{rule}")
    for label, value in (("Config", user_config_path), ("Input", config.input_path),
                         ("Calibration", calibration), ("Output", base)):
        print(f"{label + ':':<13}{value}")
    print(rule)
    if verbose:
        print(json.dumps(config.model_dump(), indent=2, default=str))
        print(rule)


def run_qvector_pipeline(
    user_config_path: str,
    cli_args: Optional[Dict[str, Any]] = None,
    rerun: bool = False,
    verbose: bool = False
) -> pd.DataFrame:
    """Resolve configuration and process one event file.

    Parameters
    ----------
    user_config_path : str
        Python file defining a ``CONFIG`` dict (see ``scripts/user_config.py``).
    cli_args : dict, optional
        Overrides from the command line: ``input_path``, ``base_dir``,
        ``calibration_dir``, ``log_level``. ``None`` values are ignored.
    rerun : bool, optional
        Remove the base directory before the job starts.
    verbose : bool, optional
        DEBUG logging and a dump of the resolved configuration.

    Returns
    -------
    pd.DataFrame
        One row per input event, as written to ``output/qvectors.parquet``.

    Examples
    --------
    ::

        run_qvector_pipeline(
            "scripts/user_config.py",
            cli_args={"input_path": "/data/run544124.parquet", "calibration_dir": "/data/cal"},
        )
    """
    config = _build_config(user_config_path, dict(cli_args or {}), verbose)

    if not config.input_path:
        raise ValueError("No input file: set INPUT_PATH in the user config or pass --input")

    if rerun:
        _clean_base_dir(config.base_dir)

    output_dirs = setup_output_directories(config.base_dir)
    _print_banner(config, user_config_path, output_dirs['base'], verbose)

    return PipelineOrchestrator(config, output_dirs).run()
