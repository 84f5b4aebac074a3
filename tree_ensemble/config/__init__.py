"""Tree Ensemble - Configuration Components.

Key Components:
- BoosterParams: open key/value parameter bag with typed accessors
- load_params / save_params: YAML or JSON parameter files

Example:
    >>> from tree_ensemble.config import BoosterParams, load_params
    >>> params = BoosterParams(objective="binary:logistic", max_depth=3)
    >>> params = load_params('config/booster.yaml')
"""

from .params import (
    BoosterParams,
    DEFAULT_PARAMS,
    PARAM_ALIASES,
    ENV_PREFIX
)
from .loader import (
    load_params,
    load_yaml,
    save_params,
    apply_environment_overrides,
    parse_env_value
)

__all__ = [
    'BoosterParams',
    'DEFAULT_PARAMS',
    'PARAM_ALIASES',
    'ENV_PREFIX',
    'load_params',
    'load_yaml',
    'save_params',
    'apply_environment_overrides',
    'parse_env_value'
]
