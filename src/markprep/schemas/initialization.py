"""Turn a user config file plus command-line arguments into a ready run.

``init_runtime_config`` is what the CLI calls before building the
orchestrator. It resolves the three layers, checks the fields a run needs,
optionally wipes the previous output (``--rerun``), creates the output
tree, stamps a run id, and saves the resolved config as
``runtime_config_<run_id>.json`` so a run can be reproduced later.
"""

import importlib.util
import shutil
import json
from pathlib import Path
from typing import Dict
from datetime import datetime, timezone

from markprep.schemas.resolve import resolve_config, check_runtime_ready
from markprep.schemas.param import ParamConfig
from markprep.schemas.user import UserConfig
from markprep.schemas.cli import CLIConfig
from markprep.schemas.internal import InternalConfig
from markprep.setup_directories import setup_output_directories


def load_user_config_dict(config_path: str) -> dict:
    """Execute a user config file and return its ``CONFIG`` dict.

    Raises
    ------
    FileNotFoundError
        If ``config_path`` does not exist.
    ValueError
        If the file defines no ``CONFIG`` dict.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    module_spec = importlib.util.spec_from_file_location("markprep_user_config", path)
    if module_spec is None or module_spec.loader is None:
        raise ImportError(f"Could not load config module from {path}")
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)

    config = getattr(module, "CONFIG", None)
    if not isinstance(config, dict):
        raise ValueError(f"No CONFIG dict found in {path}")
    return config


def generate_run_id() -> str:
    """UTC timestamp run identifier, e.g. 20240221T153000Z."""
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _cli_overrides(args) -> CLIConfig:
    """Collect the options actually given on the command line."""
    given = {
        "events_path": getattr(args, "events", None),
        "family": getattr(args, "model", None),
        "n_occasions": getattr(args, "n_occasions", None),
        "base_dir": getattr(args, "base_dir", None),
        "collapse": True if getattr(args, "collapse", False) else None,
        "output_formats": getattr(args, "formats", None) or None,
        "log_level": "DEBUG" if getattr(args, "verbose", False) else None,
    }
    return CLIConfig.model_validate({k: v for k, v in given.items() if v is not None})


def _clean_previous_run(base_dir: str) -> None:
    base = Path(base_dir)
    if base.exists():
        print(f"Removing previous output: {base}")
        shutil.rmtree(base)


def _persist_runtime_config(config: InternalConfig, output_dirs: Dict[str, Path]) -> Path:
    """Write the resolved config next to the run's outputs."""
    target = Path(output_dirs["base"]) / f"runtime_config_{config.run_id}.json"

    payload = config.model_dump()
    payload["created_at"] = datetime.now(timezone.utc).isoformat()
    with open(target, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, default=str)

    print(f"Runtime config saved: {target}")
    return target


def init_runtime_config(args) -> InternalConfig:
    """Resolve, validate and persist the configuration for one run.

    Parameters
    ----------
    args : argparse.Namespace
        Must carry ``config`` (path to the user config file). Optional
        attributes ``events``, ``model``, ``n_occasions``, ``base_dir``,
        ``collapse``, ``formats``, ``rerun`` and ``verbose`` override the
        file.

    Returns
    -------
    InternalConfig
        Frozen config with ``run_id`` and ``output_dirs`` filled in.

    Raises
    ------
    ValueError
        If no config path is given or a required field is still unset
        after merging.

    Examples
    --------
    >>> args = build_parser().parse_args(["scripts/user_config.py", "--collapse"])
    >>> config = init_runtime_config(args)
    >>> PipelineOrchestrator(config).run()
    """
    config_path = getattr(args, "config", None)
    if not config_path:
        raise ValueError("Config path required in args.config")

    user_cfg = UserConfig.model_validate(load_user_config_dict(config_path))
    config = resolve_config(ParamConfig(), user_cfg, _cli_overrides(args))
    check_runtime_ready(config)

    if getattr(args, "rerun", False):
        _clean_previous_run(config.base_dir)
    output_dirs = setup_output_directories(config.base_dir)

    stamped = config.model_dump()
    stamped["output_dirs"] = {k: str(v) for k, v in output_dirs.items()}
    stamped["run_id"] = generate_run_id()
    config = InternalConfig.model_validate(stamped)

    _persist_runtime_config(config, output_dirs)
    print(f"Runtime initialization complete. Run ID: {config.run_id}")
    return config


__all__ = ['init_runtime_config', 'load_user_config_dict', 'generate_run_id']
