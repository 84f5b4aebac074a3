# tree_ensemble/explainability/importance.py
"""Split-based feature importance for tree ensembles.

Importance types:

- ``weight``: number of splits using the feature
- ``total_gain`` / ``total_cover``: summed split gain / cover
- ``gain`` / ``cover``: the totals divided by ``weight``

Only features used by at least one split are reported.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..models.tree import LEAF, Tree
from ..utils.exceptions import FeatureIndexError, validate_parameter
from ..utils.logger import get_logger

logger = get_logger(__name__)

IMPORTANCE_TYPES = ('weight', 'gain', 'total_gain', 'cover', 'total_cover')


class FeatureImportanceAggregator:
    """Aggregate split statistics across trees by feature.

    Args:
        trees: Trees to aggregate
        num_features: Trained feature count (used for default names)

    Example:
        >>> aggregator = FeatureImportanceAggregator(booster.trees, booster.num_features())
        >>> aggregator.compute('total_gain')
        {'f0': 152.3, 'f3': 40.1}
    """

    def __init__(self, trees: Sequence[Tree], num_features: Optional[int] = None) -> None:
        self.trees = tuple(trees)
        self.num_features = num_features

        counts: Dict[int, int] = {}
        gains: Dict[int, float] = {}
        covers: Dict[int, float] = {}
        for tree in self.trees:
            internal = np.flatnonzero(tree.left_children != LEAF)
            for node in internal:
                feature = int(tree.split_indices[node])
                counts[feature] = counts.get(feature, 0) + 1
                gains[feature] = gains.get(feature, 0.0) + float(tree.gain[node])
                covers[feature] = covers.get(feature, 0.0) + float(tree.cover[node])

        self._counts = counts
        self._gains = gains
        self._covers = covers

    def _name(self, feature: int, feature_names: Optional[Sequence[str]]) -> str:
        if feature_names is None:
            return f"f{feature}"
        if feature >= len(feature_names):
            raise FeatureIndexError(
                f"Feature index {feature} is used by a split but only {len(feature_names)} names were given",
                error_code="FEATURE_NAME_MISSING",
                context={'feature_index': feature, 'num_names': len(feature_names)}
            )
        return feature_names[feature]

    def compute(self, importance_type: str = 'weight', feature_names: Optional[Sequence[str]] = None) -> Dict[str, float]:
        """Compute importance for every feature used by a split.

        Args:
            importance_type: One of ``IMPORTANCE_TYPES``
            feature_names: Names by feature index; ``f{i}`` when omitted

        Returns:
            Mapping of feature name to importance, in feature index order

        Raises:
            ConfigurationError: For an unknown importance type
            FeatureIndexError: If ``feature_names`` is too short
        """
        validate_parameter("importance_type", importance_type, valid_values=list(IMPORTANCE_TYPES))

        scores: Dict[str, float] = {}
        for feature in sorted(self._counts):
            weight = self._counts[feature]
            if importance_type == 'weight':
                value = float(weight)
            elif importance_type == 'total_gain':
                value = self._gains[feature]
            elif importance_type == 'gain':
                value = self._gains[feature] / weight
            elif importance_type == 'total_cover':
                value = self._covers[feature]
            else:
                value = self._covers[feature] / weight
            scores[self._name(feature, feature_names)] = value
        return scores

    def to_frame(self, importance_type: str = 'weight', feature_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """Importance as a DataFrame sorted by importance.

        Columns: ``feature``, ``importance``, ``relative_importance``.
        """
        scores = self.compute(importance_type, feature_names)
        importance_df = pd.DataFrame({
            'feature': list(scores.keys()),
            'importance': list(scores.values())
        }, columns=['feature', 'importance']).sort_values('importance', ascending=False, kind='stable')

        total_importance = importance_df['importance'].sum()
        if total_importance > 0:
            importance_df['relative_importance'] = importance_df['importance'] / total_importance
        else:
            importance_df['relative_importance'] = 0.0

        return importance_df.reset_index(drop=True)

    def used_features(self) -> List[int]:
        return sorted(self._counts)
