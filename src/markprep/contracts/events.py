"""Load stage contract.

Enforces the guarantee that after loading, the event table holds the
subject and occasion columns and occasions are integer typed.
"""

import pandas as pd
from markprep.contracts.base import require


def assert_events(df: pd.DataFrame, subject_column: str, occasion_column: str) -> None:
    """Enforce load stage contract.

    Called after loader.load(). Verifies the structural shape only; value
    ranges are the builder's responsibility.

    Parameters
    ----------
    df : pd.DataFrame
        Output from loader.load()

    subject_column, occasion_column : str
        Configured role column names

    Raises
    ------
    ContractViolation
        If structural requirements are violated
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Event contract violated: output is {type(df)}, expected DataFrame"
    )

    for col in (subject_column, occasion_column):
        require(
            col in df.columns,
            f"Event contract violated: missing required column '{col}'"
        )

    require(
        len(df) == 0 or pd.api.types.is_integer_dtype(df[occasion_column]),
        f"Event contract violated: '{occasion_column}' dtype is {df[occasion_column].dtype}, expected integer"
    )
