"""ParamConfig: Expert defaults for the markprep pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional, Union
from pydantic import Field, field_validator, model_validator
from markprep.families import normalize_family_name
from markprep.schemas.base import MarkprepBaseModel


FamilyName = Literal["CJS", "Occupancy", "Known", "Nest"]
ColumnType = Literal["int", "float", "str", "bool"]
FlagType = Literal["int", "float", "bool"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
FillValue = Union[int, float, str, None]


# =============================================================================
# Nested Configuration Models
# =============================================================================

class ModelConfig(MarkprepBaseModel):
    """Engine model family and study design."""
    family: FamilyName = "CJS"
    n_occasions: Optional[int] = Field(None, ge=1, description="Number of sampling occasions (N)")

    @field_validator("family", mode="before")
    @classmethod
    def normalize_family(cls, v):
        """Accept any common spelling of the family name."""
        return normalize_family_name(v)


class InputConfig(MarkprepBaseModel):
    """Delimited-text input sources."""
    events_path: Optional[str] = None
    subject_covariates_path: Optional[str] = None
    occasion_covariates_path: Optional[str] = None
    roster_path: Optional[str] = Field(
        None, description="Subject list; subjects without events get all-zero histories"
    )
    delimiter: str = Field(",", min_length=1)
    encoding: str = "utf-8"
    summarized_intervals: bool = Field(
        False, description="Nest input is already one row per nest with interval fields"
    )

    model_config = MarkprepBaseModel.model_config.copy()
    # A tab delimiter must survive whitespace stripping
    model_config.update({"str_strip_whitespace": False})


class ColumnNamesConfig(MarkprepBaseModel):
    """Role column names in the event table."""
    subject: str = "id"
    occasion: str = "occasion"
    detection: str = "detected"
    fate: str = "dead"
    status: str = "active"
    subject_type: ColumnType = "str"
    value_type: FlagType = "float"


class CovariatesConfig(MarkprepBaseModel):
    """Covariate declarations."""
    subject: list[str] = Field(default_factory=list)
    occasion: list[str] = Field(default_factory=list)
    types: dict[str, ColumnType] = Field(default_factory=dict)
    default_type: ColumnType = "float"


class BuilderConfig(MarkprepBaseModel):
    """Encounter-history builder configuration."""
    failure_policy: Literal["fail_fast", "skip_subject"] = "fail_fast"


class JoinerConfig(MarkprepBaseModel):
    """Covariate joiner configuration."""
    unjoined_policy: Literal["fail", "drop"] = "fail"
    fill_policy: Literal["fail", "carry_forward", "default"] = "fail"
    fill_value: FillValue = None

    @model_validator(mode="after")
    def default_fill_needs_value(self):
        """The 'default' fill policy is meaningless without a fill value."""
        if self.fill_policy == "default" and self.fill_value is None:
            raise ValueError("fill_policy='default' requires fill_value")
        return self


class EmitterConfig(MarkprepBaseModel):
    """Formatted table configuration."""
    include_id: bool = True
    id_column: str = "id"
    collapse: bool = False
    max_name_length: int = Field(10, ge=1, description="Engine identifier-length limit")
    formats: list[Literal["csv", "inp"]] = Field(default_factory=lambda: ["csv"])
    output_name: str = "formatted"


class LoggingConfig(MarkprepBaseModel):
    """Logging configuration."""
    level: LogLevel = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(MarkprepBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    base_dir: Optional[str] = None
    model: ModelConfig = Field(default_factory=ModelConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    columns: ColumnNamesConfig = Field(default_factory=ColumnNamesConfig)
    covariates: CovariatesConfig = Field(default_factory=CovariatesConfig)
    builder: BuilderConfig = Field(default_factory=BuilderConfig)
    joiner: JoinerConfig = Field(default_factory=JoinerConfig)
    emitter: EmitterConfig = Field(default_factory=EmitterConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
