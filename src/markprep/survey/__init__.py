"""Survey data stages: load, build histories, join covariates, emit.

Each stage is a class constructed from an InternalConfig that takes and
returns pandas DataFrames; no stage modifies its input.
"""

from markprep.survey.loader import SurveyRecordLoader
from markprep.survey.history_builder import EncounterHistoryBuilder, make_interval_record
from markprep.survey.covariate_joiner import CovariateJoiner
from markprep.survey.emitter import FormattedTableEmitter

__all__ = [
    'SurveyRecordLoader',
    'EncounterHistoryBuilder',
    'make_interval_record',
    'CovariateJoiner',
    'FormattedTableEmitter',
]
