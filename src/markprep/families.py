"""Model families understood by the external engine and their token policy.

The family tag is the engine's own model name (RMark's ``model=`` argument).
Each family maps to one of three ways of encoding an encounter history.
"""

from enum import Enum

__all__ = [
    'ModelFamily', 'TokenPolicy', 'token_policy', 'token_width',
    'normalize_family_name', 'NEST_FIELDS',
]


class ModelFamily(str, Enum):
    """Engine model families markprep can prepare data for."""
    CJS = "CJS"
    OCCUPANCY = "Occupancy"
    KNOWN_FATE = "Known"
    NEST = "Nest"


class TokenPolicy(str, Enum):
    """How per-occasion observations become history tokens.

    DETECTION: one digit per occasion, 1 = detected, 0 = not detected
    KNOWN_FATE: two digits per occasion, live/dead pair (LD format)
    INTERVAL: no tokens; first-found / last-present / last-checked days
    """
    DETECTION = "detection"
    KNOWN_FATE = "known_fate"
    INTERVAL = "interval"


_POLICY = {
    ModelFamily.CJS: TokenPolicy.DETECTION,
    ModelFamily.OCCUPANCY: TokenPolicy.DETECTION,
    ModelFamily.KNOWN_FATE: TokenPolicy.KNOWN_FATE,
    ModelFamily.NEST: TokenPolicy.INTERVAL,
}

_WIDTH = {
    TokenPolicy.DETECTION: 1,
    TokenPolicy.KNOWN_FATE: 2,
}

# Field names the engine requires, in order, for nest-survival input
NEST_FIELDS = ("FirstFound", "LastPresent", "LastChecked", "Fate")


def token_policy(family) -> TokenPolicy:
    """Return the token policy for a family tag or ``ModelFamily``."""
    return _POLICY[ModelFamily(family)]


def token_width(family) -> int:
    """Characters per occasion in the ``ch`` string of ``family``.

    Raises
    ------
    ValueError
        For the interval family, which has no per-occasion tokens.
    """
    policy = token_policy(family)
    if policy not in _WIDTH:
        raise ValueError(f"Model family {ModelFamily(family).value!r} has no per-occasion tokens")
    return _WIDTH[policy]


_ALIASES = {
    "cjs": ModelFamily.CJS.value,
    "occupancy": ModelFamily.OCCUPANCY.value,
    "known": ModelFamily.KNOWN_FATE.value,
    "knownfate": ModelFamily.KNOWN_FATE.value,
    "known_fate": ModelFamily.KNOWN_FATE.value,
    "nest": ModelFamily.NEST.value,
    "nest_survival": ModelFamily.NEST.value,
}


def normalize_family_name(value):
    """Map user spellings ("known_fate", "OCCUPANCY") to the engine tag.

    Unknown strings are returned stripped so schema validation can reject
    them with a useful message.
    """
    if isinstance(value, ModelFamily):
        return value.value
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        return _ALIASES.get(key, value.strip())
    return value
