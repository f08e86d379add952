"""zdcq User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Expert defaults live in zdcq.schemas.param.

Usage:
    python scripts/run_qvector_pipeline.py scripts/user_config.py
    python scripts/run_qvector_pipeline.py scripts/user_config.py --input events.parquet
"""

CONFIG = {
    # ========================================================================
    # INPUT & OUTPUT
    # ========================================================================
    "INPUT_PATH": "./events.parquet",   # parquet or CSV with one row per collision
    "BASE_DIR": "./zdcq_output",        # output/, qa/, logs/ are created here

    # ========================================================================
    # CALIBRATION
    # ========================================================================
    "CALIBRATION_DIR": None,            # root of <identifier>/<from>_<until>.nc files
    "ENERGY_CALIBRATION": "ZDC/Energy",
    "MEAN_VERTEX_CALIBRATION": "ZDC/vmean",
    # "RECENTERING": 5 lists of 5 identifiers (None disables a slot)
    "MIN_ENTRIES_SPARSE_BIN": 100,      # entries a (cent, vx, vy, vz) cell needs

    # ========================================================================
    # LOGGING
    # ========================================================================
    "LOG_LEVEL": "INFO",
}
