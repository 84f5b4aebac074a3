# tree_ensemble/models/evaluation.py
"""Evaluation metrics and watch-list scoring.

Built-in metrics wrap scikit-learn scoring functions. Each metric exposes
``metric_name``, a ``maximize`` direction flag and
``eval(predictions, dataset)``, which is the contract custom evaluation
functions follow as well.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    average_precision_score,
    log_loss,
    mean_absolute_error,
    mean_squared_error,
    roc_auc_score,
)

from ..config.params import BoosterParams
from ..data.dataset import Dataset
from ..utils.exceptions import ConfigurationError, DataValidationError, ModelEvaluationError, handle_and_reraise
from ..utils.logger import get_logger
from .base.protocols import EvaluationProtocol, is_maximize_metric

logger = get_logger(__name__)

_PROB_CLIP = 1e-15

WatchList = Union[Sequence[Tuple[Dataset, str]], Mapping[str, Dataset]]


class Metric:
    """Base class for built-in metrics."""

    metric_name: str = ""
    maximize: bool = False

    def eval(self, predictions: np.ndarray, dataset: Dataset) -> float:
        label = dataset.get_label()
        if label is None:
            raise DataValidationError(
                f"Metric '{self.metric_name}' needs labels but the dataset has none",
                error_code="MISSING_LABEL"
            )
        weight = dataset.get_weight()
        try:
            return float(self.score(np.asarray(label, dtype=np.float64), predictions, weight))
        except ValueError as e:
            handle_and_reraise(
                e, ModelEvaluationError,
                f"Metric '{self.metric_name}' could not be computed",
                error_code="METRIC_FAILED",
                context={'metric': self.metric_name}
            )

    def score(self, label: np.ndarray, predictions: np.ndarray, weight: Optional[np.ndarray]) -> float:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _column(predictions: np.ndarray) -> np.ndarray:
    predictions = np.asarray(predictions, dtype=np.float64)
    if predictions.ndim == 2 and predictions.shape[1] == 1:
        return predictions[:, 0]
    return predictions


class RMSE(Metric):
    metric_name = "rmse"

    def score(self, label, predictions, weight):
        return np.sqrt(mean_squared_error(label, _column(predictions), sample_weight=weight))


class MAE(Metric):
    metric_name = "mae"

    def score(self, label, predictions, weight):
        return mean_absolute_error(label, _column(predictions), sample_weight=weight)


class LogLoss(Metric):
    metric_name = "logloss"

    def score(self, label, predictions, weight):
        prob = np.clip(_column(predictions), _PROB_CLIP, 1.0 - _PROB_CLIP)
        return log_loss(label, np.column_stack([1.0 - prob, prob]), sample_weight=weight, labels=[0, 1])


class BinaryError(Metric):
    metric_name = "error"

    def score(self, label, predictions, weight):
        predicted = (_column(predictions) > 0.5).astype(np.float64)
        return 1.0 - accuracy_score(label, predicted, sample_weight=weight)


class AUC(Metric):
    metric_name = "auc"
    maximize = True

    def score(self, label, predictions, weight):
        return roc_auc_score(label, _column(predictions), sample_weight=weight)


class AUCPR(Metric):
    metric_name = "aucpr"
    maximize = True

    def score(self, label, predictions, weight):
        return average_precision_score(label, _column(predictions), sample_weight=weight)


class MultiClassError(Metric):
    metric_name = "merror"

    def score(self, label, predictions, weight):
        predicted = np.argmax(np.asarray(predictions), axis=1)
        return 1.0 - accuracy_score(label.astype(np.int64), predicted, sample_weight=weight)


class MultiClassLogLoss(Metric):
    metric_name = "mlogloss"

    def score(self, label, predictions, weight):
        prob = np.clip(np.asarray(predictions, dtype=np.float64), _PROB_CLIP, 1.0 - _PROB_CLIP)
        prob = prob / prob.sum(axis=1, keepdims=True)
        return log_loss(
            label.astype(np.int64), prob,
            sample_weight=weight, labels=list(range(prob.shape[1]))
        )


class CallableMetric:
    """Adapter for plain ``feval(predictions, dataset) -> (name, value)`` callables."""

    def __init__(self, func: Callable[[np.ndarray, Dataset], Tuple[str, float]], maximize: bool = False) -> None:
        self.func = func
        self.maximize = maximize
        self.metric_name = getattr(func, '__name__', 'feval')

    def eval(self, predictions: np.ndarray, dataset: Dataset) -> float:
        name, value = self.func(predictions, dataset)
        self.metric_name = str(name)
        return float(value)


BUILTIN_METRICS = (RMSE, MAE, LogLoss, BinaryError, AUC, AUCPR, MultiClassError, MultiClassLogLoss)


def register_builtin_metrics(registry) -> None:
    for metric_class in BUILTIN_METRICS:
        registry.register_metric(metric_class.metric_name, metric_class)


def get_metric(name: str) -> Any:
    """Instantiate the registered metric called ``name``."""
    # Import here to avoid circular imports
    from .registry import plugin_registry

    return plugin_registry.get_metric_class(name)()


def as_evaluation(feval: Any) -> Any:
    """Accept an EvaluationProtocol object or a plain callable."""
    if feval is None:
        return None
    if isinstance(feval, EvaluationProtocol):
        return feval
    if callable(feval):
        return CallableMetric(feval)
    raise ConfigurationError(
        f"feval must provide metric_name and eval(), got {type(feval).__name__}",
        error_code="BAD_FEVAL"
    )


def resolve_metrics(params: BoosterParams, default_metric: str, feval: Any = None) -> List[Tuple[Any, bool]]:
    """Build the active metric list for a training run.

    Explicit ``eval_metric`` entries come first. Without them the
    objective's default metric is used unless a custom function is given
    or ``disable_default_eval_metric`` is set. The custom function is
    always last, which makes it the metric early stopping watches.

    Returns:
        List of ``(metric, is_builtin)`` pairs in evaluation order
    """
    names = params.eval_metrics
    if not names and feval is None and not params.disable_default_eval_metric:
        names = [default_metric]

    active: List[Tuple[Any, bool]] = [(get_metric(name), True) for name in names]
    custom = as_evaluation(feval)
    if custom is not None:
        active.append((custom, False))
    return active


def metric_direction(params: BoosterParams, metric: Any) -> bool:
    """Return True when higher scores are better for ``metric``."""
    configured = params.maximize_evaluation_metrics
    if configured is not None:
        return configured
    return is_maximize_metric(metric)


def normalize_watchlist(evals: Optional[WatchList]) -> List[Tuple[Dataset, str]]:
    """Turn a watch-list into an ordered list of ``(Dataset, name)`` pairs.

    Raises:
        ConfigurationError: If an entry is malformed or names repeat
    """
    if evals is None:
        return []
    if isinstance(evals, Mapping):
        entries = [(dataset, name) for name, dataset in evals.items()]
    else:
        entries = list(evals)

    normalized: List[Tuple[Dataset, str]] = []
    seen = set()
    for entry in entries:
        if not (isinstance(entry, tuple) and len(entry) == 2 and isinstance(entry[0], Dataset)):
            raise ConfigurationError(
                "Watch-list entries must be (Dataset, name) pairs",
                error_code="BAD_WATCHLIST_ENTRY",
                context={'entry_type': type(entry).__name__}
            )
        dataset, name = entry
        name = str(name)
        if name in seen:
            raise ConfigurationError(
                f"Duplicate watch-list name: '{name}'",
                error_code="DUPLICATE_WATCH_NAME",
                context={'name': name}
            )
        seen.add(name)
        normalized.append((dataset, name))
    return normalized


def format_eval_line(iteration: int, results: Sequence[Tuple[str, str, float]]) -> str:
    """Format ``[i]\\tname-metric:score`` for one round."""
    parts = [f"[{iteration}]"]
    parts.extend(f"{name}-{metric}:{score:g}" for name, metric, score in results)
    return "\t".join(parts)


def record_history(
    history: Dict[str, Dict[str, List[float]]],
    results: Sequence[Tuple[str, str, float]]
) -> None:
    for name, metric, score in results:
        history.setdefault(name, {}).setdefault(metric, []).append(score)
