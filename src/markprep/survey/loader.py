"""Read delimited survey files into typed observation-event tables.

This module handles loading raw field-survey records (one row per
observation event, or one row per subject for covariate and roster files)
and validating them against a schema declared before the read. The output
is a pandas DataFrame holding only the declared columns, each parsed to its
declared type.

Key capabilities:
- Reads any delimited text file (delimiter and encoding from config)
- Rejects files missing declared columns (SchemaMismatch)
- Rejects fields that cannot be parsed to their type (MalformedRecord)
- Applies the same validation to in-memory DataFrames (load_frame)
"""

from pathlib import Path
import logging

import pandas as pd

from markprep.contracts import MalformedRecord, SchemaMismatch, require
from markprep.families import NEST_FIELDS, TokenPolicy, token_policy

__all__ = [
    'SurveyRecordLoader',
    'declared_event_columns',
    'declared_subject_covariate_columns',
    'declared_occasion_covariate_columns',
]

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "t", "yes", "y"}
_FALSE = {"0", "false", "f", "no", "n"}


class SurveyRecordLoader:
    """Load delimited survey tables and enforce a declared column schema.

    The schema is a mapping ``{column_name: type}`` where type is one of
    ``"int"``, ``"float"``, ``"str"``, ``"bool"``. Columns not named in the
    schema are dropped; the source file is never modified.

    Notes
    -----
    - Every field is read as text first, so parsing errors are reported
      against the original value rather than a pandas-inferred dtype
    - Empty fields are errors unless the column is declared nullable
    - Row numbers in errors are 1-based data rows (header excluded)

    Examples
    --------
    >>> loader = SurveyRecordLoader(config)
    >>> events = loader.load("BrownTreeSnake_IslandSurveys.csv",
    ...                      {"Island": "str", "Survey": "int", "BTS": "float"})
    """

    def __init__(self, config):
        """Initialize loader with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration. Only the ``input``
            section (delimiter, encoding) is read.
        """
        self.delimiter = config.input.delimiter
        self.encoding = config.input.encoding

    def load(self, filepath, columns: dict, nullable=()) -> pd.DataFrame:
        """Read ``filepath`` and validate it against ``columns``.

        Parameters
        ----------
        filepath : Path or str
            Delimited text file with a header row.

        columns : dict
            Declared schema, ``{name: "int" | "float" | "str" | "bool"}``.

        nullable : iterable of str, optional
            Columns whose empty fields load as missing values instead of
            raising MalformedRecord.

        Returns
        -------
        pd.DataFrame
            Declared columns only, in declaration order, typed.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        SchemaMismatch
            If declared columns are absent.
        MalformedRecord
            If a field cannot be parsed to its declared type.
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Survey file not found: {filepath}")

        raw = pd.read_csv(
            filepath,
            sep=self.delimiter,
            dtype=str,
            keep_default_na=False,
            encoding=self.encoding,
        )
        logger.debug("Read %d rows x %d columns from %s", len(raw), len(raw.columns), filepath)

        return self.load_frame(raw, columns, nullable=nullable, source=str(filepath))

    def load_frame(self, raw: pd.DataFrame, columns: dict, nullable=(), source: str = "<frame>") -> pd.DataFrame:
        """Validate an in-memory table against ``columns``.

        Same contract as load(); ``raw`` is not modified.
        """
        raw_columns = [str(c).strip() for c in raw.columns]
        missing = [name for name in columns if name not in raw_columns]
        require(
            not missing,
            f"{source}: declared columns absent: {missing} (found {raw_columns})",
            error=SchemaMismatch,
            missing=missing,
        )

        renamed = raw.set_axis(raw_columns, axis=1)
        nullable = set(nullable)
        parsed = {
            name: self._parse_column(renamed[name], name, dtype, name in nullable, source)
            for name, dtype in columns.items()
        }
        out = pd.DataFrame(parsed, index=pd.RangeIndex(len(raw)))

        logger.info("Loaded %d records from %s (%s)", len(out), source, ", ".join(columns))
        return out

    def _parse_column(self, values: pd.Series, name: str, dtype: str, nullable: bool, source: str) -> pd.Series:
        """Parse one text column to ``dtype``; raise on the first bad field."""
        values = values.reset_index(drop=True)
        text = values.where(values.isna(), values.astype(str).str.strip())
        empty = text.isna() | (text == "")

        if empty.any() and not nullable:
            self._reject(source, name, dtype, empty, values)

        present = text[~empty]
        if dtype == "str":
            parsed = present
        elif dtype in ("int", "float"):
            parsed = pd.to_numeric(present, errors="coerce")
            bad = parsed.isna()
            if dtype == "int":
                bad |= (parsed % 1 != 0)
            if bad.any():
                self._reject(source, name, dtype, bad.reindex(text.index, fill_value=False), values)
        elif dtype == "bool":
            lowered = present.str.lower()
            bad = ~lowered.isin(_TRUE | _FALSE)
            if bad.any():
                self._reject(source, name, dtype, bad.reindex(text.index, fill_value=False), values)
            parsed = lowered.isin(_TRUE)
        else:
            raise ValueError(f"Unsupported column type {dtype!r} for column {name!r}")

        return self._finish(parsed.reindex(text.index), dtype, has_missing=bool(empty.any()))

    @staticmethod
    def _finish(parsed: pd.Series, dtype: str, has_missing: bool) -> pd.Series:
        """Cast to the final dtype, using nullable dtypes when needed."""
        if dtype == "int":
            return parsed.astype("Int64") if has_missing else parsed.astype("int64")
        if dtype == "float":
            return parsed.astype("float64")
        if dtype == "bool":
            return parsed.astype("boolean") if has_missing else parsed.astype(bool)
        return parsed.astype(object)

    @staticmethod
    def _reject(source, name, dtype, bad_mask, values):
        position = int(bad_mask.to_numpy().nonzero()[0][0])
        value = values.iloc[position]
        raise MalformedRecord(
            f"{source}: row {position + 1}, column '{name}': cannot parse {value!r} as {dtype}",
            row=position + 1,
            column=name,
        )


# =============================================================================
# Declared schemas derived from configuration
# =============================================================================

def declared_event_columns(config) -> dict:
    """Schema of the events file for the configured model family.

    Covariates read from the events file itself (no separate covariate
    path configured) are declared here too.
    """
    cols = config.columns
    policy = token_policy(config.model.family)

    if policy is TokenPolicy.INTERVAL and config.input.summarized_intervals:
        schema = {cols.subject: cols.subject_type}
        schema.update({field: "int" for field in NEST_FIELDS})
    else:
        schema = {cols.subject: cols.subject_type, cols.occasion: "int"}
        value_column = {
            TokenPolicy.DETECTION: cols.detection,
            TokenPolicy.KNOWN_FATE: cols.fate,
            TokenPolicy.INTERVAL: cols.status,
        }[policy]
        schema[value_column] = cols.value_type

    if config.input.subject_covariates_path is None:
        schema.update(declared_subject_covariate_columns(config, include_subject=False))
    if config.input.occasion_covariates_path is None:
        schema.update(declared_occasion_covariate_columns(config, include_keys=False))
    return schema


def declared_subject_covariate_columns(config, include_subject=True) -> dict:
    """Schema of a subject-level covariate table."""
    schema = {config.columns.subject: config.columns.subject_type} if include_subject else {}
    schema.update({name: config.covariates.type_of(name) for name in config.covariates.subject})
    return schema


def declared_occasion_covariate_columns(config, include_keys=True) -> dict:
    """Schema of a long-format occasion-level covariate table."""
    schema = {}
    if include_keys:
        schema[config.columns.subject] = config.columns.subject_type
        schema[config.columns.occasion] = "int"
    schema.update({name: config.covariates.type_of(name) for name in config.covariates.occasion})
    return schema
