"""Tree Ensemble - Data Components.

Example:
    >>> from tree_ensemble.data import Dataset
    >>> dtrain = Dataset(df[features], label=df['target'])
"""

from .dataset import Dataset, to_feature_matrix

__all__ = [
    'Dataset',
    'to_feature_matrix'
]
