"""Merge the three configuration layers into one frozen runtime config.

``resolve_config`` is the only place layers are combined. Later layers win::

    ParamConfig  <  UserConfig  <  CLIConfig

``check_runtime_ready`` is applied separately at pipeline start, so that
partial configurations stay usable for single-stage work.
"""

from typing import Union, Optional
from markprep.schemas.param import ParamConfig
from markprep.schemas.user import UserConfig
from markprep.schemas.cli import CLIConfig
from markprep.schemas.internal import InternalConfig


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Recursively merge ``overrides`` into a copy of ``base``.

    Nested dicts merge key by key; any other value is replaced outright,
    lists included.

    Examples
    --------
    >>> deep_merge({"model": {"family": "CJS", "n_occasions": 6}},
    ...            {"model": {"family": "Known"}})
    {'model': {'family': 'Known', 'n_occasions': 6}}
    """
    merged = dict(base)
    for layer in overrides:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = deep_merge(current, value)
            else:
                merged[key] = value
    return merged


def _as_layer(cfg, model_cls):
    if cfg is None:
        return model_cls()
    if isinstance(cfg, model_cls):
        return cfg
    return model_cls.model_validate(cfg)


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Build the InternalConfig every stage reads.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Complete defaults.
    user_cfg : dict or UserConfig, optional
        Flat upper-case overrides from the user's config file.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides.

    Returns
    -------
    InternalConfig

    Raises
    ------
    ValidationError
        If a layer, or the merged result, fails validation.
    ValueError
        If ``fill_policy='default'`` is set without a ``fill_value``.

    Examples
    --------
    >>> from markprep.schemas import resolve_config, ParamConfig, UserConfig
    >>> user = UserConfig(MODEL="known_fate", N_OCCASIONS=8)
    >>> config = resolve_config(ParamConfig(), user)
    >>> config.model.family
    'Known'
    """
    param = _as_layer(param_cfg, ParamConfig)
    user = _as_layer(user_cfg, UserConfig)
    cli = _as_layer(cli_cfg, CLIConfig)

    merged = deep_merge(
        param.model_dump(),
        user.to_internal_overrides(),
        cli.to_internal_overrides(),
    )

    # Re-check the merged joiner section; each layer alone may be valid
    if merged["joiner"]["fill_policy"] == "default" and merged["joiner"]["fill_value"] is None:
        raise ValueError("fill_policy='default' requires fill_value")

    return InternalConfig.model_validate(merged)


def check_runtime_ready(config: InternalConfig) -> None:
    """Verify the fields a pipeline run cannot do without.

    These may legitimately be unset while configs are merged (e.g. in
    tests that only exercise one stage), so they are checked here rather
    than in the schema.

    Raises
    ------
    ValueError
        If n_occasions, events_path or base_dir is missing.
    """
    missing = []
    if config.model.n_occasions is None:
        missing.append("model.n_occasions (N_OCCASIONS)")
    if config.input.events_path is None:
        missing.append("input.events_path (EVENTS_FILE)")
    if config.base_dir is None:
        missing.append("base_dir (BASE_DIR)")
    if missing:
        raise ValueError(f"Configuration incomplete, set: {', '.join(missing)}")
