"""Build one encounter history per subject from observation events.

The token policy follows the model family:

- Detection (CJS, Occupancy): ``1``/``0`` per occasion, a missing row is ``0``
- Known fate (Known): live/dead pair per occasion, ``10`` alive, ``11`` died,
  ``00`` not under observation
- Interval (Nest): FirstFound / LastPresent / LastChecked / Fate per nest

Missing rows mean "not detected" for detection families but "not observed"
for known-fate, so the two cannot share a zero-fill.
"""

import logging

import pandas as pd

from markprep.contracts import (
    DuplicateOccasion,
    InvalidInterval,
    MalformedRecord,
    PostMortemObservation,
    SchemaMismatch,
    SurveyDataError,
    FailurePolicy,
    assert_events,
    assert_histories,
    require,
)
from markprep.families import NEST_FIELDS, ModelFamily, TokenPolicy, token_policy
from markprep.survey.survey_utils import (
    ALIVE, DEAD, DETECTED, NOT_DETECTED, NOT_OBSERVED, is_positive, sorted_subjects,
)

__all__ = ['EncounterHistoryBuilder', 'make_interval_record', 'validate_known_fate_tokens']

logger = logging.getLogger(__name__)


def make_interval_record(subject, first_found, last_present, last_checked, fate, n_occasions) -> dict:
    """Construct one validated nest-survival record.

    Raises
    ------
    InvalidInterval
        If ``1 <= first_found <= last_present <= last_checked <= n_occasions``
        does not hold, or ``fate`` is not 0 or 1.
    """
    first_found, last_present, last_checked = int(first_found), int(last_present), int(last_checked)
    if not (1 <= first_found <= last_present <= last_checked <= n_occasions):
        raise InvalidInterval(
            f"Subject {subject!r}: interval FirstFound={first_found}, LastPresent={last_present}, "
            f"LastChecked={last_checked} violates 1 <= FirstFound <= LastPresent <= LastChecked <= {n_occasions}",
            subject=subject,
        )
    if int(fate) not in (0, 1):
        raise InvalidInterval(f"Subject {subject!r}: Fate must be 0 or 1, got {fate!r}", subject=subject)

    return {
        "FirstFound": first_found,
        "LastPresent": last_present,
        "LastChecked": last_checked,
        "Fate": int(fate),
    }


def validate_known_fate_tokens(subject, tokens) -> None:
    """Reject any under-observation token after the death occasion.

    Raises
    ------
    PostMortemObservation
        If an occasion after the first ``11`` token is not ``00``.
    """
    if DEAD not in tokens:
        return
    death = tokens.index(DEAD)
    for index in range(death + 1, len(tokens)):
        if tokens[index] != NOT_OBSERVED:
            raise PostMortemObservation(
                f"Subject {subject!r} observed at occasion {index + 1} after death at occasion {death + 1}",
                subject=subject,
            )


class EncounterHistoryBuilder:
    """Group observation events by subject and encode their histories.

    Output (token families): one row per subject with columns
    ``[subject_column, "ch"]``. Output (interval family): one row per
    subject with ``[subject_column, FirstFound, LastPresent, LastChecked,
    Fate]``. Rows are sorted by subject identifier.

    Examples
    --------
    >>> builder = EncounterHistoryBuilder(config)
    >>> histories = builder.build(events, subjects=roster)
    """

    def __init__(self, config):
        """Initialize builder with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration. ``model.n_occasions``
            must be set.
        """
        require(
            config.model.n_occasions is not None,
            "n_occasions must be declared before building histories",
            error=ValueError,
        )
        self.family = ModelFamily(config.model.family)
        self.policy = token_policy(self.family)
        self.n_occasions = config.model.n_occasions
        self.failure_policy = FailurePolicy(config.builder.failure_policy)

        self.subject_column = config.columns.subject
        self.occasion_column = config.columns.occasion
        self.value_column = {
            TokenPolicy.DETECTION: config.columns.detection,
            TokenPolicy.KNOWN_FATE: config.columns.fate,
            TokenPolicy.INTERVAL: config.columns.status,
        }[self.policy]

        logger.info("EncounterHistoryBuilder initialized: family=%s, n_occasions=%d, policy=%s",
                    self.family.value, self.n_occasions, self.failure_policy.value)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, events: pd.DataFrame, subjects=None, summary=None) -> pd.DataFrame:
        """Build one history per subject.

        Parameters
        ----------
        events : pd.DataFrame
            Typed observation events from the loader.

        subjects : iterable, optional
            Roster of subjects that must get a history even without events.

        summary : RunSummary, optional
            Receives subjects excluded under ``skip_subject``.

        Returns
        -------
        pd.DataFrame
            Histories sorted by subject.

        Raises
        ------
        MalformedRecord
            Occasion outside 1..N.
        DuplicateOccasion
            Two events for the same subject and occasion.
        PostMortemObservation
            Known-fate subject observed after death.
        InvalidInterval
            Nest with no active check or activity after failure.
        """
        assert_events(events, self.subject_column, self.occasion_column)
        require(
            self.value_column in events.columns,
            f"Event table has no '{self.value_column}' column",
        )

        groups = {
            subject: frame
            for subject, frame in events.groupby(self.subject_column, sort=False)
        }
        roster = sorted_subjects(list(groups) + list(subjects if subjects is not None else []))
        logger.debug("Building histories for %d subjects (%d with events)", len(roster), len(groups))

        records = []
        for subject in roster:
            group = groups.get(subject)
            try:
                records.append(self._build_subject(subject, group))
            except SurveyDataError as exc:
                self._handle_failure(exc, summary)

        histories = pd.DataFrame.from_records(records, columns=self._output_columns())
        if self.policy is TokenPolicy.INTERVAL:
            histories = histories.astype({field: "int64" for field in NEST_FIELDS})

        assert_histories(histories, self.family, self.n_occasions, self.subject_column)
        logger.info("Built %d %s histories from %d events", len(histories), self.family.value, len(events))
        return histories

    def build_from_intervals(self, table: pd.DataFrame, summary=None) -> pd.DataFrame:
        """Validate nest data already summarized one row per nest.

        ``table`` must hold the subject column and the four nest fields.
        Each row passes through make_interval_record().
        """
        require(
            self.policy is TokenPolicy.INTERVAL,
            f"Summarized intervals only apply to the Nest family, not {self.family.value}",
            error=ValueError,
        )
        missing = [c for c in (self.subject_column, *NEST_FIELDS) if c not in table.columns]
        require(
            not missing,
            f"Summarized interval table missing columns: {missing}",
            error=SchemaMismatch,
            missing=missing,
        )

        records = []
        seen = set()
        ordered = table.sort_values(self.subject_column, kind="mergesort")
        for row in ordered.to_dict("records"):
            subject = row[self.subject_column]
            try:
                if subject in seen:
                    raise MalformedRecord(
                        f"Subject {subject!r} has more than one summarized interval row",
                        subject=subject,
                        column=self.subject_column,
                    )
                seen.add(subject)
                record = {self.subject_column: subject}
                record.update(make_interval_record(
                    subject, row["FirstFound"], row["LastPresent"], row["LastChecked"],
                    row["Fate"], self.n_occasions,
                ))
                records.append(record)
            except SurveyDataError as exc:
                self._handle_failure(exc, summary)

        histories = pd.DataFrame.from_records(records, columns=self._output_columns())
        histories = histories.astype({field: "int64" for field in NEST_FIELDS})
        assert_histories(histories, self.family, self.n_occasions, self.subject_column)
        logger.info("Validated %d summarized nest intervals", len(histories))
        return histories

    # ------------------------------------------------------------------
    # Per-subject encoding
    # ------------------------------------------------------------------

    def _build_subject(self, subject, group) -> dict:
        occasions, values = self._ordered_occasions(subject, group)

        if self.policy is TokenPolicy.DETECTION:
            tokens = [NOT_DETECTED] * self.n_occasions
            for occasion, value in zip(occasions, values):
                if is_positive(value):
                    tokens[occasion - 1] = DETECTED
            return {self.subject_column: subject, "ch": "".join(tokens)}

        if self.policy is TokenPolicy.KNOWN_FATE:
            tokens = [NOT_OBSERVED] * self.n_occasions
            for occasion, value in zip(occasions, values):
                tokens[occasion - 1] = DEAD if is_positive(value) else ALIVE
            validate_known_fate_tokens(subject, tokens)
            return {self.subject_column: subject, "ch": "".join(tokens)}

        return self._build_interval(subject, occasions, values)

    def _build_interval(self, subject, occasions, values) -> dict:
        """FirstFound/LastPresent/LastChecked/Fate from a nest's checks."""
        if not occasions:
            raise InvalidInterval(f"Subject {subject!r} has no nest checks", subject=subject)

        active = [occasion for occasion, value in zip(occasions, values) if is_positive(value)]
        if not active:
            raise InvalidInterval(
                f"Subject {subject!r} was never recorded active (first check {occasions[0]})",
                subject=subject,
            )

        last_present = active[-1]
        inactive_before = [o for o, v in zip(occasions, values) if o < last_present and not is_positive(v)]
        if inactive_before:
            raise InvalidInterval(
                f"Subject {subject!r} recorded active at occasion {last_present} "
                f"after failing at occasion {inactive_before[0]}",
                subject=subject,
            )

        first_found = occasions[0]
        last_checked = occasions[-1]
        fate = 0 if last_present == last_checked else 1

        record = {self.subject_column: subject}
        record.update(make_interval_record(
            subject, first_found, last_present, last_checked, fate, self.n_occasions
        ))
        return record

    def _ordered_occasions(self, subject, group):
        """Occasion and value lists sorted by occasion, range- and duplicate-checked."""
        if group is None or len(group) == 0:
            return [], []

        group = group.sort_values(self.occasion_column, kind="mergesort")
        occasions = [int(o) for o in group[self.occasion_column]]
        values = list(group[self.value_column])

        out_of_range = [o for o in occasions if not 1 <= o <= self.n_occasions]
        if out_of_range:
            raise MalformedRecord(
                f"Subject {subject!r}: occasion {out_of_range[0]} outside 1..{self.n_occasions}",
                subject=subject,
                column=self.occasion_column,
            )

        for previous, current in zip(occasions, occasions[1:]):
            if previous == current:
                raise DuplicateOccasion(
                    f"Subject {subject!r} has more than one event at occasion {current}",
                    subject=subject,
                )

        missing_values = [o for o, v in zip(occasions, values) if pd.isna(v)]
        if missing_values:
            raise MalformedRecord(
                f"Subject {subject!r}: no '{self.value_column}' value at occasion {missing_values[0]}",
                subject=subject,
                column=self.value_column,
            )

        return occasions, values

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _output_columns(self) -> list:
        if self.policy is TokenPolicy.INTERVAL:
            return [self.subject_column, *NEST_FIELDS]
        return [self.subject_column, "ch"]

    def _handle_failure(self, exc: SurveyDataError, summary) -> None:
        """Raise, or exclude the subject under skip_subject."""
        if exc.structural or self.failure_policy is FailurePolicy.FAIL_FAST:
            raise exc
        logger.warning("Excluding subject %r: %s", exc.subject, exc)
        if summary is not None:
            summary.record_exclusion(exc, stage="history")
