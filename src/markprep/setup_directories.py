"""
Directory setup for markprep runs.

Every output location hangs off one explicit base directory:
- formatted/: tables for the modeling engine (.csv, .inp)
- logs/: pipeline log files
- base/: run summaries and persisted runtime configs
"""

from pathlib import Path


def setup_output_directories(base_output_dir):
    """
    Set up organized output directory structure.

    Parameters
    ----------
    base_output_dir : str or Path
        Base output directory. Required; the working directory is never
        used implicitly.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'formatted', 'logs'

    Raises
    ------
    ValueError
        If base_output_dir is None or empty.
    """
    if base_output_dir is None or str(base_output_dir).strip() == "":
        raise ValueError("An explicit base output directory is required")

    base_output_dir = Path(base_output_dir).expanduser().resolve()

    directories = {
        "base": base_output_dir,
        "formatted": base_output_dir / "formatted",
        "logs": base_output_dir / "logs",
    }

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    return directories


def get_output_path(output_dirs, output_name, family, fmt):
    """
    Path of a formatted table, e.g. formatted/duck_Known.inp

    Parameters
    ----------
    output_dirs : dict
        Directory dict from setup_output_directories (str or Path values)
    output_name : str
        File stem from config (emitter.output_name)
    family : str
        Engine model family tag
    fmt : str
        "csv" or "inp"

    Returns
    -------
    Path
    """
    return Path(output_dirs["formatted"]) / f"{output_name}_{family}.{fmt}"


def get_log_path(output_dirs, output_name):
    """Path of the pipeline log file for ``output_name``."""
    return Path(output_dirs["logs"]) / f"pipeline_{output_name}.log"
