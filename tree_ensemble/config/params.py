# tree_ensemble/config/params.py
"""Open key/value configuration for boosting.

Boosting exposes many tunable parameters and most of them are only
meaningful to the grow operation. ``BoosterParams`` therefore keeps an
open, string-keyed bag of heterogeneous values. The keys the runtime
itself interprets (objective, learning rate, depth, evaluation metrics,
metric direction, seed, ...) get typed accessors and validation; every
other key is carried through verbatim and persisted with the model.
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from ..utils.exceptions import ConfigurationError, validate_parameter

ENV_PREFIX = "TREE_ENSEMBLE_"

# Alternative spellings accepted on input, normalized to the canonical key
PARAM_ALIASES: Dict[str, str] = {
    "learning_rate": "eta",
    "reg_lambda": "lambda",
    "random_state": "seed",
    "max_leaf_nodes": "max_leaves",
}

DEFAULT_PARAMS: Dict[str, Any] = {
    "objective": "reg:squarederror",
    "eta": 0.3,
    "max_depth": 6,
    "max_leaves": 0,
    "lambda": 1.0,
    "base_score": 0.5,
    "num_class": 1,
    "seed": 0,
    "subsample": 1.0,
    "colsample_bynode": 1.0,
    "tree_method": "exact",
}

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigurationError(
        f"Parameter '{name}' must be a boolean, got {value!r}",
        error_code="PARAM_NOT_BOOL",
        context={"parameter": name, "value": value}
    )


def _as_number(name: str, value: Any, kind: type) -> Union[int, float]:
    if isinstance(value, bool):
        raise ConfigurationError(
            f"Parameter '{name}' must be numeric, got {value!r}",
            error_code="PARAM_NOT_NUMERIC",
            context={"parameter": name, "value": value}
        )
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Parameter '{name}' must be numeric, got {value!r}",
            error_code="PARAM_NOT_NUMERIC",
            context={"parameter": name, "value": value}
        ) from e
    if kind is int:
        if not number.is_integer():
            raise ConfigurationError(
                f"Parameter '{name}' must be an integer, got {value!r}",
                error_code="PARAM_NOT_INTEGER",
                context={"parameter": name, "value": value}
            )
        return int(number)
    return number


def normalize_key(key: str) -> str:
    """Map an accepted alias onto its canonical parameter name."""
    if not isinstance(key, str):
        raise ConfigurationError(
            f"Parameter names must be strings, got {key!r}",
            error_code="PARAM_KEY_NOT_STRING"
        )
    return PARAM_ALIASES.get(key, key)


class BoosterParams:
    """String-keyed parameter bag with typed accessors.

    Only explicitly supplied values are stored (after alias
    normalization); accessors fall back to ``DEFAULT_PARAMS``. The stored
    mapping keeps insertion order, which makes the serialized form of a
    model stable.

    Example:
        >>> params = BoosterParams({"objective": "binary:logistic", "learning_rate": 0.1})
        >>> params.eta
        0.1
        >>> params["silent"] = 1      # unknown keys are passed through
    """

    def __init__(self, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        self._values: Dict[str, Any] = {}
        if params is not None:
            items = params.items() if isinstance(params, Mapping) else params
            for key, value in items:
                self._values[normalize_key(key)] = value
        for key, value in kwargs.items():
            self._values[normalize_key(key)] = value

    # Mapping-style access -------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        key = normalize_key(key)
        if key in self._values:
            return self._values[key]
        return DEFAULT_PARAMS[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[normalize_key(key)] = value

    def __delitem__(self, key: str) -> None:
        del self._values[normalize_key(key)]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_key(key) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BoosterParams):
            return self._values == other._values
        return NotImplemented

    def get(self, key: str, default: Any = None) -> Any:
        key = normalize_key(key)
        if key in self._values:
            return self._values[key]
        return DEFAULT_PARAMS.get(key, default)

    def update(self, other: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        if other is not None:
            for key, value in other.items():
                self[key] = value
        for key, value in kwargs.items():
            self[key] = value

    def items(self):
        return self._values.items()

    def copy(self) -> "BoosterParams":
        return BoosterParams(dict(self._values))

    def to_dict(self, include_defaults: bool = False) -> Dict[str, Any]:
        """Return the parameters as a plain dict.

        Args:
            include_defaults: Whether to fill in defaults for unset keys

        Returns:
            Dictionary of parameters
        """
        if include_defaults:
            merged = dict(DEFAULT_PARAMS)
            merged.update(self._values)
            return merged
        return dict(self._values)

    # Typed accessors for the keys the runtime interprets -------------------

    @property
    def objective(self) -> str:
        return str(self["objective"])

    @property
    def eta(self) -> float:
        return _as_number("eta", self["eta"], float)

    @property
    def max_depth(self) -> int:
        return _as_number("max_depth", self["max_depth"], int)

    @property
    def max_leaves(self) -> int:
        return _as_number("max_leaves", self["max_leaves"], int)

    @property
    def reg_lambda(self) -> float:
        return _as_number("lambda", self["lambda"], float)

    @property
    def base_score(self) -> float:
        return _as_number("base_score", self["base_score"], float)

    @property
    def num_class(self) -> int:
        return _as_number("num_class", self["num_class"], int)

    @property
    def seed(self) -> int:
        return _as_number("seed", self["seed"], int)

    @property
    def subsample(self) -> float:
        return _as_number("subsample", self["subsample"], float)

    @property
    def colsample_bynode(self) -> float:
        return _as_number("colsample_bynode", self["colsample_bynode"], float)

    @property
    def tree_method(self) -> str:
        return str(self["tree_method"])

    @property
    def eval_metrics(self) -> List[str]:
        """Explicitly configured metric names, in evaluation order."""
        value = self.get("eval_metric")
        if value is None:
            return []
        if isinstance(value, str):
            return [name.strip() for name in value.split(",") if name.strip()]
        return [str(name) for name in value]

    @property
    def maximize_evaluation_metrics(self) -> Optional[bool]:
        """Configured metric direction, or None to use the metric's own."""
        value = self.get("maximize_evaluation_metrics")
        if value is None:
            return None
        return _as_bool("maximize_evaluation_metrics", value)

    @property
    def disable_default_eval_metric(self) -> bool:
        value = self.get("disable_default_eval_metric")
        return False if value is None else _as_bool("disable_default_eval_metric", value)

    # Validation -----------------------------------------------------------

    def validate(self) -> None:
        """Validate the keys the runtime interprets.

        Raises:
            ConfigurationError: If any interpreted value is out of range
        """
        validate_parameter("eta", self.eta, min_value=0.0)
        validate_parameter("max_depth", self.max_depth, min_value=0)
        validate_parameter("max_leaves", self.max_leaves, min_value=0)
        validate_parameter("lambda", self.reg_lambda, min_value=0.0)
        validate_parameter("num_class", self.num_class, min_value=1)
        validate_parameter("seed", self.seed, min_value=0)
        validate_parameter("subsample", self.subsample, min_value=1e-6, max_value=1.0)
        validate_parameter("colsample_bynode", self.colsample_bynode, min_value=1e-6, max_value=1.0)
        # Direction flags are parsed eagerly so bad strings fail here
        self.maximize_evaluation_metrics
        self.disable_default_eval_metric

    def __repr__(self) -> str:
        return f"BoosterParams({self._values!r})"
