"""History stage contract.

Enforces the guarantee that after building, every subject has exactly one
history and every history covers exactly N occasions.
"""

import pandas as pd
from markprep.contracts.base import require
from markprep.families import NEST_FIELDS, TokenPolicy, token_policy, token_width


def assert_histories(df: pd.DataFrame, family, n_occasions: int, subject_column: str) -> None:
    """Enforce history stage contract.

    Parameters
    ----------
    df : pd.DataFrame
        Output from builder.build()

    family : str or ModelFamily
        Engine model family the histories were built for

    n_occasions : int
        Declared number of occasions

    subject_column : str
        Subject identifier column

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        subject_column in df.columns,
        f"History contract violated: missing '{subject_column}' column"
    )
    require(
        not df[subject_column].duplicated().any(),
        "History contract violated: subject appears in more than one history"
    )

    if token_policy(family) is TokenPolicy.INTERVAL:
        for col in NEST_FIELDS:
            require(col in df.columns, f"History contract violated: missing '{col}' column")
        if len(df) > 0:
            ordered = (
                (df["FirstFound"] >= 1)
                & (df["FirstFound"] <= df["LastPresent"])
                & (df["LastPresent"] <= df["LastChecked"])
                & (df["LastChecked"] <= n_occasions)
            )
            require(
                bool(ordered.all()),
                "History contract violated: interval fields out of order"
            )
        return

    require("ch" in df.columns, "History contract violated: missing 'ch' column")
    expected = n_occasions * token_width(family)
    if len(df) > 0:
        lengths = df["ch"].str.len()
        require(
            bool((lengths == expected).all()),
            f"History contract violated: history length {sorted(set(lengths))}, expected {expected}"
        )
        require(
            bool(df["ch"].str.fullmatch("[01]+").all()),
            "History contract violated: history contains tokens other than 0/1"
        )
