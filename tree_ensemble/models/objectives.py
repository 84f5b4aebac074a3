# tree_ensemble/models/objectives.py
"""Learning objectives: gradients, link functions and default metrics."""

from typing import Optional, Tuple

import numpy as np
from scipy.special import expit, logit, softmax

from ..config.params import BoosterParams
from ..utils.exceptions import ConfigurationError, DataValidationError

HESSIAN_FLOOR = 1e-16
_PROB_EPS = 1e-16


class Objective:
    """Base objective.

    Subclasses compute per-row gradients and hessians from the current
    margins and define how margins map to predictions.
    """

    name: str = ""
    default_metric: str = "rmse"

    def __init__(self, params: Optional[BoosterParams] = None) -> None:
        self.params = params if params is not None else BoosterParams()

    def num_output(self) -> int:
        return 1

    def prob_to_margin(self, base_score: float) -> float:
        return float(base_score)

    def base_margin(self) -> np.ndarray:
        """Initial margin vector, one entry per output."""
        return np.full(self.num_output(), self.prob_to_margin(self.params.base_score), dtype=np.float64)

    def validate_labels(self, label: np.ndarray) -> None:
        pass

    def gradient(self, margin: np.ndarray, label: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError

    def transform(self, margin: np.ndarray) -> np.ndarray:
        """Predictions returned to callers when ``output_margin`` is False."""
        return margin

    def eval_transform(self, margin: np.ndarray) -> np.ndarray:
        """Predictions handed to built-in metrics."""
        return self.transform(margin)


class SquaredError(Objective):
    name = "reg:squarederror"
    default_metric = "rmse"

    def gradient(self, margin, label):
        grad = margin - label.reshape(-1, 1)
        hess = np.ones_like(grad)
        return grad, hess


class LogisticRegression(Objective):
    name = "reg:logistic"
    default_metric = "rmse"

    def prob_to_margin(self, base_score: float) -> float:
        if not 0.0 < base_score < 1.0:
            raise ConfigurationError(
                f"base_score must be in (0, 1) for {self.name}, got {base_score}",
                error_code="BAD_BASE_SCORE",
                context={"objective": self.name, "base_score": base_score}
            )
        return float(logit(base_score))

    def validate_labels(self, label):
        if np.any((label < 0) | (label > 1)):
            raise DataValidationError(
                f"Labels must be in [0, 1] for {self.name}",
                error_code="LABEL_OUT_OF_RANGE",
                context={"objective": self.name}
            )

    def gradient(self, margin, label):
        prob = expit(margin)
        grad = prob - label.reshape(-1, 1)
        hess = np.maximum(prob * (1.0 - prob), HESSIAN_FLOOR)
        return grad, hess

    def transform(self, margin):
        return expit(margin)


class BinaryLogistic(LogisticRegression):
    name = "binary:logistic"
    default_metric = "logloss"


class BinaryLogitRaw(LogisticRegression):
    name = "binary:logitraw"
    default_metric = "auc"

    def transform(self, margin):
        return margin


class SoftmaxProbability(Objective):
    """Multi-class objective with one margin column per class."""

    name = "multi:softprob"
    default_metric = "mlogloss"

    def num_output(self) -> int:
        num_class = self.params.num_class
        if num_class < 2:
            raise ConfigurationError(
                f"{self.name} requires num_class >= 2, got {num_class}",
                error_code="BAD_NUM_CLASS",
                context={"objective": self.name}
            )
        return num_class

    def validate_labels(self, label):
        num_class = self.num_output()
        if np.any((label < 0) | (label >= num_class) | (label != np.floor(label))):
            raise DataValidationError(
                f"Labels must be integers in [0, {num_class}) for {self.name}",
                error_code="LABEL_OUT_OF_RANGE",
                context={"objective": self.name, "num_class": num_class}
            )

    def gradient(self, margin, label):
        prob = softmax(margin, axis=1)
        onehot = np.zeros_like(prob)
        onehot[np.arange(prob.shape[0]), label.astype(np.int64)] = 1.0
        grad = prob - onehot
        hess = np.maximum(2.0 * prob * (1.0 - prob), HESSIAN_FLOOR)
        return grad, hess

    def transform(self, margin):
        return softmax(margin, axis=1)


class SoftmaxClass(SoftmaxProbability):
    name = "multi:softmax"
    default_metric = "merror"

    def transform(self, margin):
        return np.argmax(margin, axis=1).astype(np.float64).reshape(-1, 1)

    def eval_transform(self, margin):
        return softmax(margin, axis=1)


BUILTIN_OBJECTIVES = (
    SquaredError,
    LogisticRegression,
    BinaryLogistic,
    BinaryLogitRaw,
    SoftmaxProbability,
    SoftmaxClass,
)


def register_builtin_objectives(registry) -> None:
    for objective_class in BUILTIN_OBJECTIVES:
        registry.register_objective(objective_class.name, objective_class)


def get_objective(params: BoosterParams) -> Objective:
    """Instantiate the objective named by ``params.objective``."""
    # Import here to avoid circular imports
    from .registry import plugin_registry

    objective_class = plugin_registry.get_objective_class(params.objective)
    return objective_class(params)
