"""Attach subject- and occasion-level covariates to encounter histories.

Subject-level covariates become scalar columns. Occasion-level covariates
arrive as long rows (subject, occasion, value) and are reshaped into one
tuple of length N per subject, positionally aligned with the history
tokens: entry k belongs to occasion k+1.
"""

import logging

import numpy as np
import pandas as pd

from markprep.contracts import (
    DuplicateOccasion,
    FailurePolicy,
    MalformedRecord,
    MissingOccasionCovariate,
    NameCollision,
    SchemaMismatch,
    SurveyDataError,
    UnjoinedSubject,
    assert_joined,
    require,
)
from markprep.families import NEST_FIELDS, TokenPolicy, token_policy

__all__ = ['CovariateJoiner', 'reserved_column_names']

logger = logging.getLogger(__name__)


def reserved_column_names(config) -> set:
    """Output column names a covariate may not reuse."""
    reserved = {config.columns.subject, config.emitter.id_column}
    if token_policy(config.model.family) is TokenPolicy.INTERVAL:
        reserved.update(NEST_FIELDS)
        reserved.add("Freq")
    else:
        reserved.update({"ch", "freq"})
    return reserved


def _clean(value):
    """Missing values to None, numpy scalars to Python scalars."""
    if value is None or value is pd.NA:
        return None
    if isinstance(value, float) and np.isnan(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


class CovariateJoiner:
    """Join declared covariates onto built histories.

    Output columns are the history columns followed by the subject
    covariates (scalars) and the occasion covariates (tuples of length N),
    in declaration order.

    Notes
    -----
    - Covariate source rows are sorted before reshaping, so the result does
      not depend on input row order
    - Subjects present in a covariate source but absent from the histories
      are ignored
    """

    def __init__(self, config):
        """Initialize joiner with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        """
        self.subject_column = config.columns.subject
        self.occasion_column = config.columns.occasion
        self.n_occasions = config.model.n_occasions
        self.subject_covariates = tuple(config.covariates.subject)
        self.occasion_covariates = tuple(config.covariates.occasion)

        self.unjoined_policy = config.joiner.unjoined_policy
        self.fill_policy = config.joiner.fill_policy
        self.fill_value = config.joiner.fill_value
        self.failure_policy = FailurePolicy(config.builder.failure_policy)
        self.reserved = reserved_column_names(config)

        logger.info("CovariateJoiner initialized: %d subject, %d occasion covariates, fill=%s, unjoined=%s",
                    len(self.subject_covariates), len(self.occasion_covariates),
                    self.fill_policy, self.unjoined_policy)

    def join(self, histories: pd.DataFrame, subject_table=None, occasion_table=None, summary=None) -> pd.DataFrame:
        """Attach covariates to ``histories``.

        Parameters
        ----------
        histories : pd.DataFrame
            Output of EncounterHistoryBuilder.

        subject_table : pd.DataFrame, optional
            One or more rows per subject holding the subject covariates.
            Required when subject covariates are declared.

        occasion_table : pd.DataFrame, optional
            Long rows (subject, occasion, covariates...). Required when
            occasion covariates are declared.

        summary : RunSummary, optional
            Receives subjects dropped or skipped.

        Returns
        -------
        pd.DataFrame
            New table; ``histories`` is not modified.

        Raises
        ------
        NameCollision
            Covariate declared at both levels or shadowing a reserved column.
        UnjoinedSubject
            History subject missing from a covariate source (policy ``fail``).
        MissingOccasionCovariate
            Gap in an occasion covariate that the fill policy cannot cover.
        MalformedRecord
            Conflicting subject-level values for one subject.
        """
        self._check_names()

        subject_values, conflicting = {}, {}
        if self.subject_covariates:
            require(subject_table is not None,
                    "Subject covariates declared but no subject covariate table given", error=ValueError)
            subject_values, conflicting = self._index_subject_table(subject_table)

        occasion_values, occasion_errors = {}, {}
        if self.occasion_covariates:
            require(occasion_table is not None,
                    "Occasion covariates declared but no occasion covariate table given", error=ValueError)
            occasion_values, occasion_errors = self._index_occasion_table(occasion_table)

        columns = list(histories.columns) + list(self.subject_covariates) + list(self.occasion_covariates)
        records = []
        for record in histories.to_dict("records"):
            subject = record[self.subject_column]
            try:
                if self.subject_covariates:
                    record.update(self._subject_row(subject, subject_values, conflicting))
                if self.occasion_covariates:
                    record.update(self._occasion_row(subject, occasion_values, occasion_errors))
            except SurveyDataError as exc:
                self._handle_failure(exc, summary)
                continue
            records.append(record)

        joined = pd.DataFrame.from_records(records, columns=columns)
        if len(joined) == 0:
            joined = joined.astype(histories.dtypes.to_dict())
        else:
            joined = joined.astype({c: t for c, t in histories.dtypes.items() if t != object})

        assert_joined(joined, self.subject_covariates, self.occasion_covariates, self.n_occasions)
        logger.info("Joined covariates onto %d of %d histories", len(joined), len(histories))
        return joined

    # ------------------------------------------------------------------
    # Declaration checks
    # ------------------------------------------------------------------

    def _check_names(self) -> None:
        both = sorted(set(self.subject_covariates) & set(self.occasion_covariates))
        if both:
            raise NameCollision(
                f"Covariate(s) {both} declared at both subject and occasion level"
            )
        shadowing = sorted((set(self.subject_covariates) | set(self.occasion_covariates)) & self.reserved)
        if shadowing:
            raise NameCollision(f"Covariate(s) {shadowing} reuse a reserved output column name")
        for names in (self.subject_covariates, self.occasion_covariates):
            repeated = sorted({n for n in names if names.count(n) > 1})
            if repeated:
                raise NameCollision(f"Covariate(s) {repeated} declared more than once")

    # ------------------------------------------------------------------
    # Subject-level covariates
    # ------------------------------------------------------------------

    def _index_subject_table(self, table: pd.DataFrame):
        """Map subject -> {covariate: value}; collect conflicting subjects."""
        self._require_columns(table, [self.subject_column, *self.subject_covariates], "subject covariate")

        frame = table[[self.subject_column, *self.subject_covariates]]
        frame = frame.sort_values(self.subject_column, kind="mergesort").drop_duplicates()

        values, conflicting = {}, {}
        for subject, group in frame.groupby(self.subject_column, sort=True):
            if len(group) > 1:
                varying = [c for c in self.subject_covariates if group[c].nunique(dropna=False) > 1]
                conflicting[subject] = varying
                continue
            row = group.iloc[0]
            values[subject] = {name: _clean(row[name]) for name in self.subject_covariates}
        return values, conflicting

    def _subject_row(self, subject, values: dict, conflicting: dict) -> dict:
        if subject in conflicting:
            raise MalformedRecord(
                f"Subject {subject!r} has conflicting values for subject covariate(s) {conflicting[subject]}",
                subject=subject,
                column=conflicting[subject][0] if conflicting[subject] else None,
            )
        if subject not in values:
            raise UnjoinedSubject(f"Subject {subject!r} has no subject covariate row", subject=subject)
        return values[subject]

    # ------------------------------------------------------------------
    # Occasion-level covariates
    # ------------------------------------------------------------------

    def _index_occasion_table(self, table: pd.DataFrame):
        """Map subject -> {covariate: [value or None] * N}.

        Subjects with duplicate or out-of-range occasion rows are collected
        as errors and raised when that subject is joined.
        """
        self._require_columns(
            table, [self.subject_column, self.occasion_column, *self.occasion_covariates], "occasion covariate"
        )

        frame = table[[self.subject_column, self.occasion_column, *self.occasion_covariates]]
        frame = frame.sort_values([self.subject_column, self.occasion_column], kind="mergesort")
        frame = frame.drop_duplicates()

        values, errors = {}, {}
        for subject, group in frame.groupby(self.subject_column, sort=True):
            occasions = [int(o) for o in group[self.occasion_column]]
            bad = [o for o in occasions if not 1 <= o <= self.n_occasions]
            if bad:
                errors[subject] = MalformedRecord(
                    f"Subject {subject!r}: occasion covariate row at occasion {bad[0]} outside 1..{self.n_occasions}",
                    subject=subject,
                    column=self.occasion_column,
                )
                continue
            if len(set(occasions)) != len(occasions):
                repeated = next(o for o in occasions if occasions.count(o) > 1)
                errors[subject] = DuplicateOccasion(
                    f"Subject {subject!r} has conflicting occasion covariate rows at occasion {repeated}",
                    subject=subject,
                )
                continue

            slots = {}
            for name in self.occasion_covariates:
                series = [None] * self.n_occasions
                for occasion, value in zip(occasions, group[name]):
                    series[occasion - 1] = _clean(value)
                slots[name] = series
            values[subject] = slots
        return values, errors

    def _occasion_row(self, subject, values: dict, errors: dict) -> dict:
        if subject in errors:
            raise errors[subject]
        if subject not in values:
            raise UnjoinedSubject(f"Subject {subject!r} has no occasion covariate rows", subject=subject)
        return {name: self._fill(subject, name, series) for name, series in values[subject].items()}

    def _fill(self, subject, name: str, series: list) -> tuple:
        """Apply the fill policy to the gaps of one covariate series."""
        filled = []
        for index, value in enumerate(series):
            if value is None:
                if self.fill_policy == "default":
                    value = self.fill_value
                elif self.fill_policy == "carry_forward" and index > 0:
                    value = filled[index - 1]
                else:
                    reason = "no earlier value to carry forward" if self.fill_policy == "carry_forward" else "no value"
                    raise MissingOccasionCovariate(
                        f"Subject {subject!r}: covariate '{name}' has {reason} at occasion {index + 1}",
                        subject=subject,
                        covariate=name,
                        occasion=index + 1,
                    )
            filled.append(value)
        return tuple(filled)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_columns(table, columns, label) -> None:
        missing = [c for c in columns if c not in table.columns]
        require(
            not missing,
            f"{label.capitalize()} table missing declared columns: {missing}",
            error=SchemaMismatch,
            missing=missing,
        )

    def _handle_failure(self, exc: SurveyDataError, summary) -> None:
        """Raise, or drop the subject under the applicable policy."""
        dropping = isinstance(exc, UnjoinedSubject) and self.unjoined_policy == "drop"
        skipping = self.failure_policy is FailurePolicy.SKIP_SUBJECT and not exc.structural
        if not (dropping or skipping):
            raise exc
        logger.warning("Dropping subject %r at join: %s", exc.subject, exc)
        if summary is not None:
            summary.record_exclusion(exc, stage="join")
