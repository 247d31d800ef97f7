"""Small helpers shared by the survey stages."""

import numpy as np
import pandas as pd

from markprep.families import token_width

__all__ = [
    'DETECTED', 'NOT_DETECTED', 'NOT_OBSERVED', 'ALIVE', 'DEAD',
    'split_tokens', 'occasion_column_names', 'sorted_subjects', 'is_positive',
]

DETECTED = "1"
NOT_DETECTED = "0"

# Known-fate live/dead pairs
NOT_OBSERVED = "00"
ALIVE = "10"
DEAD = "11"


def split_tokens(ch: str, family) -> tuple:
    """Split a ``ch`` string back into its per-occasion tokens.

    >>> split_tokens("101011", "Known")
    ('10', '10', '11')
    """
    width = token_width(family)
    if len(ch) % width:
        raise ValueError(f"History {ch!r} is not a whole number of {width}-character tokens")
    return tuple(ch[i:i + width] for i in range(0, len(ch), width))


def occasion_column_names(name: str, n_occasions: int) -> list[str]:
    """Positionally-suffixed column names, e.g. temp1..temp6."""
    return [f"{name}{occasion}" for occasion in range(1, n_occasions + 1)]


def sorted_subjects(values) -> list:
    """Unique subject identifiers in a deterministic order."""
    return sorted(pd.unique(pd.Series(list(values), dtype=object)))


def is_positive(value) -> bool:
    """True when a detection/fate/status value counts as a 'yes'."""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    return bool(value > 0)
