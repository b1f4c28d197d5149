"""Configuration resolution and merging logic.

resolve_config() merges ParamConfig and UserConfig in precedence order
and returns a validated, frozen ProjectionOptions.

Precedence (highest to lowest):
1. UserConfig (user overrides)
2. ParamConfig (expert defaults)
"""

from typing import Union, Optional
from ramproj.schemas.param import ParamConfig
from ramproj.schemas.user import UserConfig
from ramproj.schemas.internal import ProjectionOptions


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Deep merge multiple dictionaries.

    Later dictionaries override earlier ones. Nested dictionaries are
    merged recursively; other values are replaced.

    Examples
    --------
    >>> deep_merge({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
    {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = value

    return result


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
) -> ProjectionOptions:
    """Resolve final runtime configuration from param and user configs.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert configuration with complete defaults.
    user_cfg : dict or UserConfig, optional
        User overrides. If None or empty, only param defaults are used.

    Returns
    -------
    ProjectionOptions
        Fully validated, immutable runtime configuration

    Raises
    ------
    ValidationError
        If any config fails Pydantic validation

    Examples
    --------
    >>> options = resolve_config(ParamConfig(), UserConfig(MODE="mean", MAX_WORKERS=2))
    >>> options.projection.mode
    'mean'
    >>> options.parallel.max_workers
    2
    """
    if not isinstance(param_cfg, ParamConfig):
        param = ParamConfig.model_validate(param_cfg)
    else:
        param = param_cfg

    if user_cfg is None or (isinstance(user_cfg, dict) and not user_cfg):
        user = UserConfig()
    elif not isinstance(user_cfg, UserConfig):
        user = UserConfig.model_validate(user_cfg)
    else:
        user = user_cfg

    merged = deep_merge(param.model_dump(), user.to_internal_overrides())

    # User values skip ParamConfig's normalizers, so route them through it again
    # before freezing.
    merged = ParamConfig.model_validate(merged).model_dump()

    return ProjectionOptions.model_validate(merged)


def default_options() -> ProjectionOptions:
    """ProjectionOptions built from expert defaults only."""
    return resolve_config(ParamConfig())
