"""Merge the three configuration layers into an InternalConfig.

Expert defaults (ParamConfig) are overridden by the user file (UserConfig),
which is overridden by command-line values (CLIConfig). The merged tree is
checked against ParamConfig again before it is frozen, so a user override
cannot escape the bounds the defaults obey.
"""

from typing import Union, Optional
from zdcq.schemas.param import ParamConfig
from zdcq.schemas.user import UserConfig
from zdcq.schemas.cli import CLIConfig
from zdcq.schemas.internal import InternalConfig


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Recursively merge override dicts into a copy of ``base``.

    Only dict values are merged; lists (such as the 5x5 recentering
    identifier grid) are replaced whole.

    Examples
    --------
    >>> base = {"a": 1, "b": {"c": 2, "d": 3}}
    >>> override = {"b": {"d": 4, "e": 5}, "f": 6}
    >>> deep_merge(base, override)
    {'a': 1, 'b': {'c': 2, 'd': 4, 'e': 5}, 'f': 6}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = value

    return result


def _as_model(value, model_cls):
    if value is None or (isinstance(value, dict) and not value):
        return model_cls()
    if isinstance(value, model_cls):
        return value
    return model_cls.model_validate(value)


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Build the frozen runtime configuration.

    Every runtime component receives the returned object; none of them read
    ParamConfig or UserConfig directly.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert configuration with complete defaults. Required.
    user_cfg : dict or UserConfig, optional
        User configuration with overrides.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides.

    Returns
    -------
    InternalConfig
        Fully validated, immutable runtime configuration

    Raises
    ------
    ValidationError
        If any config fails Pydantic validation. Merged values are
        re-validated against ParamConfig so that user overrides obey the
        same bounds as the defaults.

    Examples
    --------
    >>> from zdcq.schemas import resolve_config, ParamConfig, UserConfig
    >>> config = resolve_config(ParamConfig(), UserConfig(MIN_ENTRIES_SPARSE_BIN=50))
    >>> config.calibration.min_entries_sparse_bin
    50
    """
    param = _as_model(param_cfg, ParamConfig)
    user = _as_model(user_cfg, UserConfig)
    cli = _as_model(cli_cfg, CLIConfig)

    param_dict = param.model_dump()
    merged = deep_merge(param_dict, user.to_internal_overrides(), cli.to_internal_overrides())

    # Re-run the expert-level validators (axis ranges, grid shape, bounds)
    checked = ParamConfig.model_validate(merged)

    return InternalConfig.model_validate(checked.model_dump())
