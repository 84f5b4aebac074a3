# tree_ensemble/__init__.py
"""Tree Ensemble - Gradient Boosted Tree Training and Inference Runtime.

Grows an ensemble of decision trees round by round, scores watch-list
datasets every round, stops early when a metric stops improving, and
serves thread-safe batch and single-row predictions. Models persist to a
versioned binary format and training can resume from a saved model.

Quick Start:
    >>> import tree_ensemble as te
    >>> dtrain = te.Dataset(X_train, label=y_train)
    >>> dvalid = te.Dataset(X_valid, label=y_valid)
    >>> evals_result = {}
    >>> booster = te.train(
    ...     {'objective': 'binary:logistic', 'eta': 0.1, 'max_depth': 4},
    ...     dtrain, num_boost_round=200,
    ...     evals=[(dtrain, 'train'), (dvalid, 'valid')],
    ...     early_stopping_rounds=10,
    ...     evals_result=evals_result
    ... )
    >>> booster.best_iteration
    37
    >>> booster.save_model('model.bin')
    >>> restored = te.load_model('model.bin')
    >>> restored.inplace_predict(X_valid[:1])
"""

from typing import Optional

# Package metadata
__version__ = "1.0.0"
__author__ = "Tree Ensemble Development Team"
__license__ = "MIT"
__description__ = "Gradient boosted tree ensembles with resumable training"

# Configure package-level logging
from .utils.logger import configure_logging, get_logger

configure_logging(
    level="INFO",
    format_style="detailed",
    include_console=True
)

logger = get_logger(__name__)

# Core imports - make key functionality available at package level
from .data.dataset import Dataset
from .models.booster import Booster
from .models.tree import Tree
from .models.trainer import ModelTrainer, train, cv, CVResult
from .models.early_stopping import should_early_stop, EarlyStoppingMonitor
from .models.attributes import AttributeStore
from .models.grower import SklearnTreeGrower
from .models.base import EvaluationProtocol, GrowerProtocol
from .models.registry import plugin_registry

# Explainability
from .explainability.importance import FeatureImportanceAggregator

# Configuration system
from .config.params import BoosterParams
from .config.loader import load_params, save_params

# Utilities
from .utils.logger import set_log_level
from .utils.timer import timer, timed_operation
from .utils.exceptions import (
    TreeEnsembleError,
    ConfigurationError,
    DataValidationError,
    DimensionError,
    ModelTrainingError,
    ModelEvaluationError,
    FeatureIndexError,
    FormatError,
    ModelIOError
)


def load_model(source, params: Optional[dict] = None) -> Booster:
    """Load a saved model from a path, binary stream or bytes.

    Args:
        source: Where to read the model from
        params: Optional parameters applied on top of the saved ones

    Returns:
        Restored Booster

    Raises:
        FormatError: If the data is not a valid model
        ModelIOError: If the source cannot be read
    """
    booster = Booster(model_file=source)
    if params:
        booster.set_param(params)
    return booster


# Public API definition - what users should import
__all__ = [
    # Core workflow
    'Dataset',
    'Booster',
    'Tree',
    'ModelTrainer',
    'train',
    'cv',
    'CVResult',
    'load_model',

    # Early stopping
    'should_early_stop',
    'EarlyStoppingMonitor',

    # Model state and extension points
    'AttributeStore',
    'SklearnTreeGrower',
    'EvaluationProtocol',
    'GrowerProtocol',
    'plugin_registry',

    # Explainability
    'FeatureImportanceAggregator',

    # Configuration
    'BoosterParams',
    'load_params',
    'save_params',

    # Utilities
    'get_logger',
    'configure_logging',
    'set_log_level',
    'timer',
    'timed_operation',

    # Exceptions
    'TreeEnsembleError',
    'ConfigurationError',
    'DataValidationError',
    'DimensionError',
    'ModelTrainingError',
    'ModelEvaluationError',
    'FeatureIndexError',
    'FormatError',
    'ModelIOError',

    # Metadata
    '__version__',
]
