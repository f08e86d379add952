#!/usr/bin/env python3
"""ZDC Q-vector pipeline runner.

Usage:
    python scripts/run_qvector_pipeline.py scripts/user_config.py
    python scripts/run_qvector_pipeline.py scripts/user_config.py --input events.parquet
    python scripts/run_qvector_pipeline.py scripts/user_config.py --calibration-dir /data/cal -v

Note: User config in scripts/user_config.py, expert defaults in zdcq.schemas.param
"""

import argparse

from zdcq.cli import run_qvector_pipeline


def main():
    parser = argparse.ArgumentParser(description="Compute recentered ZDC Q-vectors")
    parser.add_argument("config", help="Path to user config file")
    parser.add_argument("--input", dest="input_path", help="Event file (parquet or CSV)")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--calibration-dir", help="Root of the calibration directory tree")
    parser.add_argument("--rerun", action="store_true", help="Delete output directory before running")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    run_qvector_pipeline(
        args.config,
        cli_args={
            "input_path": args.input_path,
            "base_dir": args.base_dir,
            "calibration_dir": args.calibration_dir,
        },
        rerun=args.rerun,
        verbose=args.verbose,
    )


if __name__ == "__main__":
    main()
