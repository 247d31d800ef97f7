"""Emit stage contract.

Enforces the guarantee that the terminal table carries the columns the
engine requires and a positive integer frequency.
"""

import pandas as pd
from markprep.contracts.base import require
from markprep.families import NEST_FIELDS, TokenPolicy, token_policy


def assert_formatted(df: pd.DataFrame, family) -> None:
    """Enforce emit stage contract.

    Raises
    ------
    ContractViolation
        If structural requirements are violated
    """
    if token_policy(family) is TokenPolicy.INTERVAL:
        required_cols = list(NEST_FIELDS) + ["Freq"]
        freq_col = "Freq"
    else:
        required_cols = ["ch", "freq"]
        freq_col = "freq"

    for col in required_cols:
        require(
            col in df.columns,
            f"Formatted contract violated: missing required column '{col}'"
        )

    require(
        not df.columns.duplicated().any(),
        "Formatted contract violated: duplicate column names"
    )

    if len(df) > 0:
        require(
            pd.api.types.is_integer_dtype(df[freq_col]),
            f"Formatted contract violated: '{freq_col}' must be integer"
        )
        require(
            bool((df[freq_col] > 0).all()),
            f"Formatted contract violated: '{freq_col}' must be > 0 for all rows"
        )
