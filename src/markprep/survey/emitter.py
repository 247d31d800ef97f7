"""Produce the fixed-format table the modeling engine reads.

Column layout (token families)::

    [id] ch freq [subject covariates] [occ_cov1 .. occ_covN] ...

Column layout (nest survival)::

    [id] FirstFound LastPresent LastChecked Fate Freq [covariates]

The engine truncates or rejects identifiers longer than ten characters, so
every user-derived column name is checked before anything is written. The
reserved nest field names are the engine's own and are exempt.
"""

from pathlib import Path
import logging
import os

import numpy as np
import pandas as pd

from markprep.contracts import ColumnNameTooLong, NameCollision, assert_formatted, require
from markprep.families import NEST_FIELDS, ModelFamily, TokenPolicy, token_policy
from markprep.survey.survey_utils import occasion_column_names

__all__ = ['FormattedTableEmitter', 'format_inp_value']

logger = logging.getLogger(__name__)


def format_inp_value(value) -> str:
    """Render one covariate value for a MARK .inp record.

    Raises
    ------
    ValueError
        For non-numeric values, which the .inp format cannot carry.
    """
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    raise ValueError(f"MARK .inp covariates must be numeric, got {value!r}; write csv instead")


class FormattedTableEmitter:
    """Flatten joined histories into the engine's input table.

    Examples
    --------
    >>> emitter = FormattedTableEmitter(config)
    >>> table = emitter.emit(joined)
    >>> emitter.write(table, "out/duck_Known.inp", "inp")
    """

    def __init__(self, config):
        self.family = ModelFamily(config.model.family)
        self.policy = token_policy(self.family)
        self.n_occasions = config.model.n_occasions
        self.subject_column = config.columns.subject
        self.subject_covariates = tuple(config.covariates.subject)
        self.occasion_covariates = tuple(config.covariates.occasion)

        self.include_id = config.emitter.include_id and not config.emitter.collapse
        self.id_column = config.emitter.id_column
        self.collapse = config.emitter.collapse
        self.max_name_length = config.emitter.max_name_length

        if self.policy is TokenPolicy.INTERVAL:
            self.history_columns = list(NEST_FIELDS)
            self.freq_column = "Freq"
        else:
            self.history_columns = ["ch"]
            self.freq_column = "freq"

        logger.info("FormattedTableEmitter initialized: family=%s, collapse=%s, include_id=%s",
                    self.family.value, self.collapse, self.include_id)

    def column_layout(self) -> list:
        """Output column names in order.

        Raises
        ------
        NameCollision
            If two columns would share a name, e.g. subject covariate
            ``x1`` next to occasion covariate ``x``.
        ColumnNameTooLong
            If a user-derived name exceeds ``max_name_length``.
        """
        derived = list(self.subject_covariates)
        for name in self.occasion_covariates:
            derived.extend(occasion_column_names(name, self.n_occasions))
        if self.include_id:
            derived.insert(0, self.id_column)

        seen = set(self.history_columns) | {self.freq_column}
        clashes = []
        for name in derived:
            if name in seen and name not in clashes:
                clashes.append(name)
            seen.add(name)
        if clashes:
            raise NameCollision(f"Output column name(s) {clashes} would be written more than once")

        for name in derived:
            if len(name) > self.max_name_length:
                raise ColumnNameTooLong(
                    f"Column name '{name}' is {len(name)} characters; the engine allows {self.max_name_length}",
                    column=name,
                    limit=self.max_name_length,
                )

        columns = [self.id_column] if self.include_id else []
        columns += self.history_columns + [self.freq_column]
        columns += derived[1:] if self.include_id else derived
        return columns

    def emit(self, joined: pd.DataFrame) -> pd.DataFrame:
        """Build the terminal table from joined histories.

        Parameters
        ----------
        joined : pd.DataFrame
            Output of CovariateJoiner.join().

        Returns
        -------
        pd.DataFrame
            One row per subject, or one row per distinct history and
            covariate combination when collapsing.
        """
        columns = self.column_layout()
        require(
            self.subject_column in joined.columns,
            f"Joined table has no '{self.subject_column}' column",
        )

        records = []
        for row in joined.to_dict("records"):
            record = {}
            if self.include_id:
                record[self.id_column] = row[self.subject_column]
            for name in self.history_columns:
                record[name] = row[name]
            record[self.freq_column] = 1
            for name in self.subject_covariates:
                record[name] = row[name]
            for name in self.occasion_covariates:
                record.update(zip(occasion_column_names(name, self.n_occasions), row[name]))
            records.append(record)

        table = pd.DataFrame.from_records(records, columns=columns)
        table[self.freq_column] = table[self.freq_column].astype("int64")
        if self.policy is TokenPolicy.INTERVAL:
            table = table.astype({name: "int64" for name in NEST_FIELDS})

        if self.collapse:
            table = self._collapse(table)

        assert_formatted(table, self.family)
        logger.info("Emitted %d %s records (%d subjects)", len(table), self.family.value, len(joined))
        return table

    def _collapse(self, table: pd.DataFrame) -> pd.DataFrame:
        """Merge identical histories with identical covariates, summing freq."""
        keys = [c for c in table.columns if c != self.freq_column]
        if len(table) == 0:
            return table
        collapsed = (
            table.groupby(keys, sort=True, dropna=False)[self.freq_column]
            .sum()
            .reset_index()
        )
        collapsed = collapsed[list(table.columns)]
        logger.debug("Collapsed %d records into %d", len(table), len(collapsed))
        return collapsed.reset_index(drop=True)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def write(self, table: pd.DataFrame, path, fmt: str = "csv") -> Path:
        """Write ``table`` to ``path`` as ``csv`` or MARK ``inp``.

        The file is written next to its destination and moved into place,
        so a failed write never leaves a partial table.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if fmt == "csv":
            text = table.to_csv(index=False, lineterminator="\n")
        elif fmt == "inp":
            text = self.to_inp(table)
        else:
            raise ValueError(f"Unknown output format: {fmt}")

        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)

        logger.info("Wrote %s table: %s", fmt, path)
        return path

    def to_inp(self, table: pd.DataFrame) -> str:
        """Render ``table`` in the MARK .inp text format.

        One record per line: ``/* id */ ch freq cov1 cov2 ...;``. The id
        comment is present only when the table has an id column.
        """
        has_id = self.id_column in table.columns and self.include_id
        value_columns = [c for c in table.columns if c not in (self.id_column, *self.history_columns,
                                                               self.freq_column)]
        lines = []
        for row in table.to_dict("records"):
            fields = []
            if has_id:
                fields.append(f"/* {row[self.id_column]} */")
            for name in self.history_columns:
                fields.append(str(row[name]))
            fields.append(str(int(row[self.freq_column])))
            fields.extend(format_inp_value(row[name]) for name in value_columns)
            lines.append(" ".join(fields) + ";")
        return "\n".join(lines) + ("\n" if lines else "")
