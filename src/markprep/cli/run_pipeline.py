"""Core markprep execution logic.

This module contains the actual pipeline runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import sys
import json
import argparse
import logging
from typing import Optional, Dict, Any

from pydantic import ValidationError

from markprep.contracts import SurveyDataError
from markprep.pipeline.orchestrator import PipelineOrchestrator
from markprep.schemas.initialization import init_runtime_config

__all__ = ['run_markprep_pipeline', 'build_parser', 'main']

logger = logging.getLogger(__name__)

# Exit statuses: bad configuration or missing input, bad survey data
EXIT_CONFIG_ERROR = 1
EXIT_DATA_ERROR = 2


def run_markprep_pipeline(
    user_config_path: str,
    cli_args: Optional[Dict[str, Any]] = None,
    rerun: bool = False,
    verbose: bool = False
):
    """Execute one markprep run.

    This is the core pipeline execution function. It:
    1. Loads and resolves configuration (Param < User < CLI)
    2. Optionally cleans the output directory if rerun=True
    3. Sets up output directories and persists the runtime config
    4. Runs the orchestrator to completion

    Parameters
    ----------
    user_config_path : str
        Path to user config file (Python file with CONFIG dict).

    cli_args : dict, optional
        CLI argument overrides. Keys: events, model, n_occasions, base_dir,
        collapse, formats. All optional.

    rerun : bool, optional
        If True, delete the output directory before running.

    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    Returns
    -------
    pd.DataFrame
        The formatted table written by the run.

    Raises
    ------
    FileNotFoundError
        If user_config_path or an input file does not exist.
    ValueError
        If configuration validation fails.
    SurveyDataError
        If the survey data cannot be formatted.

    Examples
    --------
    Run with user config only::

        run_markprep_pipeline("scripts/user_config.py")

    Run with CLI overrides::

        run_markprep_pipeline(
            "scripts/user_config.py",
            cli_args={"model": "Known", "n_occasions": 8, "base_dir": "/tmp/out"},
        )
    """
    cli_args = dict(cli_args or {})
    args = argparse.Namespace(
        config=user_config_path,
        events=cli_args.get("events"),
        model=cli_args.get("model"),
        n_occasions=cli_args.get("n_occasions"),
        base_dir=cli_args.get("base_dir"),
        collapse=bool(cli_args.get("collapse", False)),
        formats=cli_args.get("formats"),
        rerun=rerun,
        verbose=verbose,
    )
    config = init_runtime_config(args)

    # Print summary
    print(f"\n{'='*60}")
    print("markprep Encounter History Formatting")
    print('='*60)
    print(f"Config:    {user_config_path}")
    print(f"Model:     {config.model.family}")
    print(f"Occasions: {config.model.n_occasions}")
    print(f"Events:    {config.input.events_path}")
    print(f"Output:    {config.base_dir}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2, default=str))
        print('='*60)

    orchestrator = PipelineOrchestrator(config)
    return orchestrator.run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markprep",
        description="Format field-survey records into encounter-history tables",
    )
    parser.add_argument("config", help="Path to user config file")
    parser.add_argument("--events", help="Override events file")
    parser.add_argument("--model", help="Override model family (CJS, Occupancy, Known, Nest)")
    parser.add_argument("--n-occasions", type=int, help="Override number of occasions")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--collapse", action="store_true", help="Collapse identical histories into freq counts")
    parser.add_argument("--format", dest="formats", action="append", choices=["csv", "inp"],
                        help="Output format (repeatable)")
    parser.add_argument("--rerun", action="store_true", help="Delete output directory before running")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    """Entry point for the ``markprep`` command. Returns the exit status."""
    args = build_parser().parse_args(argv)

    try:
        run_markprep_pipeline(
            args.config,
            cli_args={
                "events": args.events,
                "model": args.model,
                "n_occasions": args.n_occasions,
                "base_dir": args.base_dir,
                "collapse": args.collapse,
                "formats": args.formats,
            },
            rerun=args.rerun,
            verbose=args.verbose,
        )
    except SurveyDataError as exc:
        print(f"markprep: {exc.kind}: {exc}", file=sys.stderr)
        return EXIT_DATA_ERROR
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        print(f"markprep: invalid configuration: {problems}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (FileNotFoundError, ValueError) as exc:
        print(f"markprep: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    return 0


if __name__ == "__main__":
    sys.exit(main())
