"""
Directory setup for the Q-vector pipeline.

One base directory per job:
- output/  per-event Q-vector tables (parquet)
- qa/      QA and bootstrap statistics (netCDF)
- logs/    pipeline logs
"""

from pathlib import Path

SUBDIRECTORIES = ("output", "qa", "logs")


def setup_output_directories(base_output_dir=None):
    """
    Create the job directory tree and return its paths.

    Parameters
    ----------
    base_output_dir : str or Path, optional
        Job directory. Defaults to ``./zdcq_output``.

    Returns
    -------
    dict
        Paths keyed by 'base', 'output', 'qa', 'logs'
    """
    base = Path(base_output_dir or Path.cwd() / "zdcq_output").expanduser().resolve()

    directories = {"base": base}
    directories.update({name: base / name for name in SUBDIRECTORIES})

    print("\nJob directories:")
    for key, path in directories.items():
        path.mkdir(parents=True, exist_ok=True)
        print(f"  {key:8s}: {path}")
    print()

    return directories
