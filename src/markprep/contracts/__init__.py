"""Pipeline contracts: fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages and
defines the data-error taxonomy the stages raise.

Key principle:
- Pydantic validates config correctness
- SurveyDataError subclasses report bad survey data
- Contracts validate pipeline correctness
"""

from markprep.contracts.failure import (
    ContractViolation,
    FailurePolicy,
    SurveyDataError,
    SchemaMismatch,
    MalformedRecord,
    DuplicateOccasion,
    PostMortemObservation,
    InvalidInterval,
    UnjoinedSubject,
    NameCollision,
    MissingOccasionCovariate,
    ColumnNameTooLong,
)
from markprep.contracts.base import require
from markprep.contracts.events import assert_events
from markprep.contracts.history import assert_histories
from markprep.contracts.joined import assert_joined
from markprep.contracts.formatted import assert_formatted

__all__ = [
    "ContractViolation",
    "FailurePolicy",
    "SurveyDataError",
    "SchemaMismatch",
    "MalformedRecord",
    "DuplicateOccasion",
    "PostMortemObservation",
    "InvalidInterval",
    "UnjoinedSubject",
    "NameCollision",
    "MissingOccasionCovariate",
    "ColumnNameTooLong",
    "require",
    "assert_events",
    "assert_histories",
    "assert_joined",
    "assert_formatted",
]
