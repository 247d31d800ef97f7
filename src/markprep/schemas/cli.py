"""CLIConfig: Command-line operational overrides.

Minimal configuration for parameters that commonly change between runs:
input file, model family, occasion count, output directory, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from markprep.families import normalize_family_name
from markprep.schemas.base import MarkprepBaseModel
from markprep.schemas.param import FamilyName, LogLevel


class CLIConfig(MarkprepBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            events_path="data/blackduck.csv",
            family="Known",
            n_occasions=8,
            base_dir="/scratch/markprep_output",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    family: Optional[FamilyName] = None
    n_occasions: Optional[int] = Field(None, ge=1)
    events_path: Optional[str] = None
    base_dir: Optional[str] = None
    collapse: Optional[bool] = None
    output_formats: Optional[list[Literal["csv", "inp"]]] = None
    log_level: Optional[LogLevel] = None

    @field_validator("family", mode="before")
    @classmethod
    def normalize_family(cls, v):
        """Accept any common spelling of the model family."""
        return normalize_family_name(v)

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

        model_overrides = {}
        if self.family is not None:
            model_overrides["family"] = self.family
        if self.n_occasions is not None:
            model_overrides["n_occasions"] = self.n_occasions
        if model_overrides:
            overrides["model"] = model_overrides

        if self.events_path is not None:
            overrides["input"] = {"events_path": self.events_path}

        emitter_overrides = {}
        if self.collapse is not None:
            emitter_overrides["collapse"] = self.collapse
        if self.output_formats is not None:
            emitter_overrides["formats"] = list(self.output_formats)
        if emitter_overrides:
            overrides["emitter"] = emitter_overrides

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
