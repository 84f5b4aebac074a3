"""Tree Ensemble - Explainability Components.

Example:
    >>> from tree_ensemble.explainability import FeatureImportanceAggregator
    >>> FeatureImportanceAggregator(booster.trees).to_frame('total_gain')
"""

from .importance import FeatureImportanceAggregator, IMPORTANCE_TYPES

__all__ = [
    'FeatureImportanceAggregator',
    'IMPORTANCE_TYPES'
]
