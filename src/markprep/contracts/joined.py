"""Join stage contract.

Enforces positional alignment of occasion-level covariates with the
encounter history.
"""

import pandas as pd
from markprep.contracts.base import require


def assert_joined(df: pd.DataFrame, subject_covariates, occasion_covariates, n_occasions: int) -> None:
    """Enforce join stage contract.

    Every subject-level covariate is a column; every occasion-level
    covariate is a column of length-N sequences.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for name in list(subject_covariates) + list(occasion_covariates):
        require(
            name in df.columns,
            f"Join contract violated: missing covariate column '{name}'"
        )

    for name in occasion_covariates:
        if len(df) == 0:
            continue
        lengths = df[name].map(len)
        require(
            bool((lengths == n_occasions).all()),
            f"Join contract violated: '{name}' has {sorted(set(lengths))} entries, expected {n_occasions}"
        )
