"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and frozen.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict
from markprep.schemas.base import MarkprepBaseModel
from markprep.schemas.param import ColumnType, FamilyName, FillValue, FlagType, LogLevel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalModelConfig(MarkprepBaseModel):
    """Runtime model family and study design.

    Note: n_occasions may be None while configs are merged; it is checked
    by check_runtime_ready() before the pipeline runs.
    """
    family: FamilyName
    n_occasions: Optional[int] = Field(ge=1)


class InternalInputConfig(MarkprepBaseModel):
    """Runtime input sources."""
    events_path: Optional[str]
    subject_covariates_path: Optional[str]
    occasion_covariates_path: Optional[str]
    roster_path: Optional[str]
    delimiter: str
    encoding: str
    summarized_intervals: bool

    model_config = MarkprepBaseModel.model_config.copy()
    model_config.update({"str_strip_whitespace": False})


class InternalColumnNamesConfig(MarkprepBaseModel):
    """Runtime role column names."""
    subject: str
    occasion: str
    detection: str
    fate: str
    status: str
    subject_type: ColumnType
    value_type: FlagType


class InternalCovariatesConfig(MarkprepBaseModel):
    """Runtime covariate declarations."""
    subject: tuple[str, ...]
    occasion: tuple[str, ...]
    types: dict[str, ColumnType]
    default_type: ColumnType

    def type_of(self, name: str) -> str:
        """Declared type of covariate ``name``."""
        return self.types[name] if name in self.types else self.default_type


class InternalBuilderConfig(MarkprepBaseModel):
    """Runtime history builder configuration."""
    failure_policy: Literal["fail_fast", "skip_subject"]


class InternalJoinerConfig(MarkprepBaseModel):
    """Runtime covariate joiner configuration."""
    unjoined_policy: Literal["fail", "drop"]
    fill_policy: Literal["fail", "carry_forward", "default"]
    fill_value: FillValue


class InternalEmitterConfig(MarkprepBaseModel):
    """Runtime formatted table configuration."""
    include_id: bool
    id_column: str
    collapse: bool
    max_name_length: int
    formats: tuple[Literal["csv", "inp"], ...]
    output_name: str


class InternalLoggingConfig(MarkprepBaseModel):
    """Runtime logging configuration."""
    level: LogLevel


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(MarkprepBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated and immutable.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.family = config.model.family  # NOT .get()
            self.n_occasions = config.model.n_occasions

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    base_dir: Optional[str]
    model: InternalModelConfig
    input: InternalInputConfig
    columns: InternalColumnNamesConfig
    covariates: InternalCovariatesConfig
    builder: InternalBuilderConfig
    joiner: InternalJoinerConfig
    emitter: InternalEmitterConfig
    logging: InternalLoggingConfig
    run_id: Optional[str] = None
    output_dirs: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )

