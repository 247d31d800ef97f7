"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for all contracts.
Stage modules also use it to raise taxonomy errors with a precise type.
"""

from markprep.contracts.failure import ContractViolation


def require(condition: bool, message: str, error=ContractViolation, **details) -> None:
    """Enforce a pipeline contract.

    This is called at stage boundaries to verify the preceding stage
    produced the guaranteed invariants. It is fail-fast: no recovery,
    no fallback, no silence.

    Parameters
    ----------
    condition : bool
        The invariant that must be true.

    message : str
        Error message explaining the violation.

    error : type, optional
        Exception class to raise (default ContractViolation). Taxonomy
        errors from ``markprep.contracts.failure`` are accepted.

    **details
        Extra keyword arguments forwarded to the exception constructor
        (e.g. ``subject=...`` for subject-scoped errors).

    Raises
    ------
    ContractViolation or SurveyDataError
        If condition is False.

    Examples
    --------
    >>> require("ch" in df.columns, "History contract: missing 'ch' column")
    >>> require(first <= last, "bad interval", error=InvalidInterval, subject="N12")
    """
    if not condition:
        raise error(message, **details)
