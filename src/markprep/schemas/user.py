"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for common naming patterns (e.g., EVENTS_FILE -> events_path, MODEL -> family).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient to accept
both uppercase and lowercase keys, any spelling of the model family, and
single strings where lists are expected.
"""

from typing import Literal, Optional, Any
from pydantic import Field, field_validator
from markprep.families import normalize_family_name
from markprep.schemas.base import MarkprepBaseModel
from markprep.schemas.param import ColumnType, FamilyName, FillValue, FlagType


def _as_list(v):
    """Accept a single name where a list of names is expected."""
    if isinstance(v, str):
        return [v]
    return v


class UserColumnNamesConfig(MarkprepBaseModel):
    """User-facing role column names."""
    subject: Optional[str] = None
    occasion: Optional[str] = None
    detection: Optional[str] = None
    fate: Optional[str] = None
    status: Optional[str] = None
    subject_type: Optional[ColumnType] = None
    value_type: Optional[FlagType] = None


class UserJoinerConfig(MarkprepBaseModel):
    """User-facing joiner config."""
    unjoined_policy: Optional[Literal["fail", "drop"]] = None
    fill_policy: Optional[Literal["fail", "carry_forward", "default"]] = None
    fill_value: FillValue = None

    @field_validator("unjoined_policy", "fill_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v):
        """Normalize policy names to lowercase snake case."""
        if isinstance(v, str):
            return v.lower().strip().replace("-", "_")
        return v


class UserEmitterConfig(MarkprepBaseModel):
    """User-facing emitter config."""
    include_id: Optional[bool] = None
    id_column: Optional[str] = None
    collapse: Optional[bool] = None
    max_name_length: Optional[int] = None
    formats: Optional[list[Literal["csv", "inp"]]] = None
    output_name: Optional[str] = None

    @field_validator("formats", mode="before")
    @classmethod
    def coerce_formats(cls, v):
        """Accept a single format name."""
        return _as_list(v)


class UserConfig(MarkprepBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    This config is converted to internal overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            MODEL="occupancy",
            N_OCCASIONS=6,
            EVENTS_FILE="data/BrownTreeSnake_IslandSurveys.csv",
            SUBJECT_COLUMN="Island",
            OCCASION_COLUMN="Survey",
            DETECTION_COLUMN="BTS",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Model and study design
    family: Optional[FamilyName] = Field(None, alias="MODEL")
    n_occasions: Optional[int] = Field(None, alias="N_OCCASIONS", ge=1)
    base_dir: Optional[str] = Field(None, alias="BASE_DIR")

    # Input sources (flat aliases)
    events_path: Optional[str] = Field(None, alias="EVENTS_FILE")
    subject_covariates_path: Optional[str] = Field(None, alias="SUBJECT_COVARIATES_FILE")
    occasion_covariates_path: Optional[str] = Field(None, alias="OCCASION_COVARIATES_FILE")
    roster_path: Optional[str] = Field(None, alias="ROSTER_FILE")
    delimiter: Optional[str] = Field(None, alias="DELIMITER")
    summarized_intervals: Optional[bool] = Field(None, alias="SUMMARIZED_INTERVALS")

    # Role columns (flat aliases)
    subject_column: Optional[str] = Field(None, alias="SUBJECT_COLUMN")
    occasion_column: Optional[str] = Field(None, alias="OCCASION_COLUMN")
    detection_column: Optional[str] = Field(None, alias="DETECTION_COLUMN")
    fate_column: Optional[str] = Field(None, alias="FATE_COLUMN")
    status_column: Optional[str] = Field(None, alias="STATUS_COLUMN")

    # Covariates (flat aliases)
    subject_covariates: Optional[list[str]] = Field(None, alias="SUBJECT_COVARIATES")
    occasion_covariates: Optional[list[str]] = Field(None, alias="OCCASION_COVARIATES")
    covariate_types: Optional[dict[str, ColumnType]] = Field(None, alias="COVARIATE_TYPES")

    # Policies (flat aliases)
    failure_policy: Optional[Literal["fail_fast", "skip_subject"]] = Field(None, alias="FAILURE_POLICY")
    unjoined_policy: Optional[Literal["fail", "drop"]] = Field(None, alias="UNJOINED_POLICY")
    fill_policy: Optional[Literal["fail", "carry_forward", "default"]] = Field(None, alias="FILL_POLICY")
    fill_value: FillValue = Field(None, alias="FILL_VALUE")

    # Output (flat aliases)
    collapse: Optional[bool] = Field(None, alias="COLLAPSE")
    include_id: Optional[bool] = Field(None, alias="INCLUDE_ID")
    output_formats: Optional[list[Literal["csv", "inp"]]] = Field(None, alias="OUTPUT_FORMATS")

    # Nested overrides (advanced users)
    columns: Optional[UserColumnNamesConfig] = None
    joiner: Optional[UserJoinerConfig] = None
    emitter: Optional[UserEmitterConfig] = None
    input: Optional[dict[str, Any]] = None

    model_config = MarkprepBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    # A tab DELIMITER must survive whitespace stripping
    model_config.update({"populate_by_name": True, "extra": "ignore", "str_strip_whitespace": False})

    @field_validator("family", mode="before")
    @classmethod
    def normalize_family(cls, v):
        """Accept any common spelling of the model family."""
        return normalize_family_name(v)

    @field_validator("subject_covariates", "occasion_covariates", "output_formats", mode="before")
    @classmethod
    def coerce_name_lists(cls, v):
        """Accept a single name where a list is expected."""
        return _as_list(v)

    @field_validator("failure_policy", "unjoined_policy", "fill_policy", mode="before")
    @classmethod
    def normalize_policy_names(cls, v):
        """Normalize policy names to lowercase snake case."""
        if isinstance(v, str):
            return v.lower().strip().replace("-", "_")
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        # Model section
        model = {}
        if self.family is not None:
            model["family"] = self.family
        if self.n_occasions is not None:
            model["n_occasions"] = self.n_occasions
        if model:
            overrides["model"] = model

        # Input section
        input_cfg = {}
        for key in ("events_path", "subject_covariates_path", "occasion_covariates_path", "roster_path",
                    "delimiter", "summarized_intervals"):
            value = getattr(self, key)
            if value is not None:
                input_cfg[key] = value
        if self.input is not None:
            input_cfg.update({k: v for k, v in self.input.items() if v is not None})
        if input_cfg:
            overrides["input"] = input_cfg

        # Columns section
        columns = {}
        for role in ("subject", "occasion", "detection", "fate", "status"):
            value = getattr(self, f"{role}_column")
            if value is not None:
                columns[role] = value
        if self.columns is not None:
            columns.update(self.columns.model_dump(exclude_none=True))
        if columns:
            overrides["columns"] = columns

        # Covariates section
        covariates = {}
        if self.subject_covariates is not None:
            covariates["subject"] = list(self.subject_covariates)
        if self.occasion_covariates is not None:
            covariates["occasion"] = list(self.occasion_covariates)
        if self.covariate_types is not None:
            covariates["types"] = dict(self.covariate_types)
        if covariates:
            overrides["covariates"] = covariates

        # Builder section
        if self.failure_policy is not None:
            overrides["builder"] = {"failure_policy": self.failure_policy}

        # Joiner section
        joiner = {}
        if self.unjoined_policy is not None:
            joiner["unjoined_policy"] = self.unjoined_policy
        if self.fill_policy is not None:
            joiner["fill_policy"] = self.fill_policy
        if self.fill_value is not None:
            joiner["fill_value"] = self.fill_value
        if self.joiner is not None:
            joiner.update(self.joiner.model_dump(exclude_none=True))
        if joiner:
            overrides["joiner"] = joiner

        # Emitter section
        emitter = {}
        if self.collapse is not None:
            emitter["collapse"] = self.collapse
        if self.include_id is not None:
            emitter["include_id"] = self.include_id
        if self.output_formats is not None:
            emitter["formats"] = list(self.output_formats)
        if self.emitter is not None:
            emitter.update(self.emitter.model_dump(exclude_none=True))
        if emitter:
            overrides["emitter"] = emitter

        return overrides
