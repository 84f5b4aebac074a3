"""Protocol definitions for tree_ensemble extension points.

This module defines the interfaces that custom evaluation functions and
grow operations must implement to plug into the training loop.
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from ...config.params import BoosterParams
    from ...data.dataset import Dataset
    from ..booster import Booster
    from ..tree import Tree


@runtime_checkable
class EvaluationProtocol(Protocol):
    """Protocol for evaluation functions.

    An evaluation function scores predictions against a dataset's labels.
    It may also expose a boolean ``maximize`` attribute; when absent the
    score is treated as a loss (lower is better).

    Example:
        >>> class IncreasingEval:
        ...     metric_name = "inc"
        ...     def __init__(self):
        ...         self.value = 0.0
        ...     def eval(self, predictions, dataset):
        ...         self.value += 1.0
        ...         return self.value
    """

    metric_name: str

    def eval(self, predictions: np.ndarray, dataset: 'Dataset') -> float:
        """Score predictions for a dataset.

        Args:
            predictions: Model predictions, shape (rows, outputs)
            dataset: Dataset the predictions were made for

        Returns:
            Metric value
        """
        ...


@runtime_checkable
class GrowerProtocol(Protocol):
    """Protocol for the grow operation that produces one tree per round.

    The grow operation receives the model as it stands before the round.
    It must not mutate the model; the caller appends the returned tree.
    """

    def grow(self, booster: 'Booster', dtrain: 'Dataset', params: 'BoosterParams') -> 'Tree':
        """Grow one tree against the current model state.

        Args:
            booster: Model before this round
            dtrain: Training data with labels
            params: Boosting parameters

        Returns:
            A fully built Tree
        """
        ...


def is_maximize_metric(metric: Any) -> bool:
    """Return the metric's own direction flag, defaulting to minimize."""
    return bool(getattr(metric, 'maximize', False))
