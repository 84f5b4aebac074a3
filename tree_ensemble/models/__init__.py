"""Tree Ensemble - Model Components.

This module provides the boosted ensemble itself together with the
training loop, evaluation, early stopping and model persistence.

Key Components:
- Booster: ensemble state, prediction, attributes and serialization
- ModelTrainer / train: per-round training loop with early stopping
- cv: k-fold cross validation in lockstep
- Tree: array-backed decision tree
- SklearnTreeGrower: default grow operation

Example:
    >>> from tree_ensemble.models import Booster, train
    >>> booster = train({'objective': 'reg:squarederror'}, dtrain, 20)
"""

from .tree import Tree, TREE_FIELDS
from .booster import Booster
from .trainer import ModelTrainer, train, cv, CVResult
from .early_stopping import should_early_stop, EarlyStoppingMonitor
from .evaluation import Metric, get_metric
from .objectives import Objective, get_objective
from .grower import SklearnTreeGrower
from .attributes import AttributeStore
from .serialization import MAGIC, FORMAT_VERSION

# Extension points
from .base import EvaluationProtocol, GrowerProtocol
from .registry import PluginRegistry, plugin_registry

__all__ = [
    # Model state
    'Booster',
    'Tree',
    'TREE_FIELDS',
    'AttributeStore',

    # Training
    'ModelTrainer',
    'train',
    'cv',
    'CVResult',
    'should_early_stop',
    'EarlyStoppingMonitor',
    'SklearnTreeGrower',

    # Objectives and metrics
    'Objective',
    'get_objective',
    'Metric',
    'get_metric',

    # Serialization
    'MAGIC',
    'FORMAT_VERSION',

    # Extension points
    'EvaluationProtocol',
    'GrowerProtocol',
    'PluginRegistry',
    'plugin_registry'
]
