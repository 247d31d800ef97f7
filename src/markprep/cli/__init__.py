"""Command-line interface for markprep runs.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from markprep.cli.run_pipeline import run_markprep_pipeline, main

__all__ = ['run_markprep_pipeline', 'main']
