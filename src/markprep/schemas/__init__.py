"""Pydantic configuration schemas for the markprep pipeline.

This module provides strictly typed configuration models. All configuration
validation, coercion, and normalization happens at schema validation time
via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
check_runtime_ready : function
    Verifies the fields a pipeline run requires
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from markprep.schemas.resolve import resolve_config, check_runtime_ready
from markprep.schemas.internal import InternalConfig
from markprep.schemas.param import ParamConfig
from markprep.schemas.user import UserConfig
from markprep.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'check_runtime_ready',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
