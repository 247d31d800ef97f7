"""Centralized failure policy and error taxonomy.

Two families of errors live here:

- ContractViolation: a stage did not produce the invariants it promised.
  This is a pipeline bug and always aborts the run.
- SurveyDataError and its subclasses: the input data (or the declared
  schema) is inconsistent. Subject-scoped errors may be isolated under
  FailurePolicy.SKIP_SUBJECT; structural errors always abort.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    """What to do when a single subject's records are invalid.

    FAIL_FAST (default): Raise immediately, aborting the run
    SKIP_SUBJECT: Exclude the subject and record it in the run summary
    """
    FAIL_FAST = "fail_fast"
    SKIP_SUBJECT = "skip_subject"


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input. It means a
    pipeline stage did not produce the invariants it promised.

    Key distinction:
    - ValidationError: config error (handled by Pydantic)
    - SurveyDataError: bad survey data or schema declaration
    - ContractViolation: pipeline bug (programmer error)
    """
    pass


class SurveyDataError(ValueError):
    """Base class for every data error the pipeline reports.

    Attributes
    ----------
    kind : str
        Stable error-kind name used as the key in run summaries.
    structural : bool
        True when the error invalidates the whole pipeline configuration
        rather than one subject; structural errors are never skipped.
    subject : object or None
        Subject identifier the error is scoped to, if any.
    """

    kind = "SurveyDataError"
    structural = False

    def __init__(self, message: str, subject=None):
        super().__init__(message)
        self.subject = subject


class SchemaMismatch(SurveyDataError):
    """Declared columns are absent from the source table."""
    kind = "SchemaMismatch"
    structural = True

    def __init__(self, message: str, missing=()):
        super().__init__(message)
        self.missing = tuple(missing)


class MalformedRecord(SurveyDataError):
    """A field cannot be parsed to its declared type or is out of range."""
    kind = "MalformedRecord"

    def __init__(self, message: str, subject=None, row=None, column=None):
        super().__init__(message, subject=subject)
        self.row = row
        self.column = column


class DuplicateOccasion(SurveyDataError):
    """Two events share the same subject and occasion."""
    kind = "DuplicateOccasion"


class PostMortemObservation(SurveyDataError):
    """A known-fate subject is observed after its recorded death."""
    kind = "PostMortemObservation"


class InvalidInterval(SurveyDataError):
    """Nest interval violates first <= last-present <= last-checked <= N."""
    kind = "InvalidInterval"


class UnjoinedSubject(SurveyDataError):
    """A subject has no matching row in a covariate source."""
    kind = "UnjoinedSubject"


class NameCollision(SurveyDataError):
    """A covariate name is declared twice or shadows a reserved column."""
    kind = "NameCollision"
    structural = True


class MissingOccasionCovariate(SurveyDataError):
    """An occasion-level covariate has no value for some occasion."""
    kind = "MissingOccasionCovariate"

    def __init__(self, message: str, subject=None, covariate=None, occasion=None):
        super().__init__(message, subject=subject)
        self.covariate = covariate
        self.occasion = occasion


class ColumnNameTooLong(SurveyDataError):
    """An emitted column name exceeds the engine's identifier limit."""
    kind = "ColumnNameTooLong"
    structural = True

    def __init__(self, message: str, column=None, limit=None):
        super().__init__(message)
        self.column = column
        self.limit = limit
