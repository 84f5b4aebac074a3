# tests/test_importance.py
"""Tests for split-based feature importance."""

import pytest
import numpy as np

from tree_ensemble.explainability.importance import FeatureImportanceAggregator
from tree_ensemble.models.tree import Tree
from tree_ensemble.models.trainer import train
from tree_ensemble.utils.exceptions import ConfigurationError, FeatureIndexError


@pytest.fixture
def hand_built_trees():
    stump = Tree(
        left_children=[1, -1, -1],
        right_children=[2, -1, -1],
        split_indices=[0, -1, -1],
        split_conditions=[0.5, 0.0, 0.0],
        default_left=[True, True, True],
        leaf_values=[0.0, 1.0, 2.0],
        gain=[10.0, 0.0, 0.0],
        cover=[100.0, 60.0, 40.0],
    )
    deeper = Tree(
        left_children=[1, 3, -1, -1, -1],
        right_children=[2, 4, -1, -1, -1],
        split_indices=[2, 0, -1, -1, -1],
        split_conditions=[1.0, -0.5, 0.0, 0.0, 0.0],
        default_left=[False, True, True, True, True],
        leaf_values=[0.0, 0.0, 0.3, -0.1, 0.2],
        gain=[4.0, 2.0, 0.0, 0.0, 0.0],
        cover=[50.0, 30.0, 20.0, 10.0, 20.0],
    )
    return [stump, deeper]


class TestFeatureImportanceAggregator:
    """Test importance over hand-built trees."""

    @pytest.mark.parametrize("importance_type,expected", [
        ('weight', {'f0': 2.0, 'f2': 1.0}),
        ('total_gain', {'f0': 12.0, 'f2': 4.0}),
        ('gain', {'f0': 6.0, 'f2': 4.0}),
        ('total_cover', {'f0': 130.0, 'f2': 50.0}),
        ('cover', {'f0': 65.0, 'f2': 50.0}),
    ])
    def test_importance_types(self, hand_built_trees, importance_type, expected):
        """Test each importance type against hand-computed values."""
        aggregator = FeatureImportanceAggregator(hand_built_trees, num_features=3)
        assert aggregator.compute(importance_type) == pytest.approx(expected)

    def test_unused_features_omitted(self, hand_built_trees):
        """Test that features without splits are left out."""
        scores = FeatureImportanceAggregator(hand_built_trees).compute('weight')
        assert 'f1' not in scores

    def test_feature_names(self, hand_built_trees):
        """Test that supplied names replace f-indices."""
        scores = FeatureImportanceAggregator(hand_built_trees).compute('weight', ['age', 'income', 'tenure'])
        assert scores == {'age': 2.0, 'tenure': 1.0}

    def test_short_name_list(self, hand_built_trees):
        """Test that a too-short name list raises an IndexError."""
        aggregator = FeatureImportanceAggregator(hand_built_trees)
        with pytest.raises(FeatureIndexError) as exc_info:
            aggregator.compute('weight', ['age', 'income'])
        assert isinstance(exc_info.value, IndexError)

    def test_unknown_type(self, hand_built_trees):
        """Test that an unknown importance type is rejected."""
        with pytest.raises(ConfigurationError):
            FeatureImportanceAggregator(hand_built_trees).compute('shap')

    def test_to_frame(self, hand_built_trees):
        """Test the sorted importance frame."""
        frame = FeatureImportanceAggregator(hand_built_trees).to_frame('total_gain')
        assert list(frame.columns) == ['feature', 'importance', 'relative_importance']
        assert list(frame['feature']) == ['f0', 'f2']
        assert frame['relative_importance'].sum() == pytest.approx(1.0)

    def test_empty_ensemble(self):
        """Test importance of a model without trees."""
        aggregator = FeatureImportanceAggregator([])
        assert aggregator.compute('gain') == {}
        assert aggregator.to_frame().empty


class TestBoosterScores:
    """Test importance exposed by a trained Booster."""

    def test_booster_feature_names_default(self, binary_datasets):
        """Test that scores use the model's feature names."""
        dtr, _ = binary_datasets
        booster = train({'objective': 'binary:logistic', 'max_depth': 3}, dtr, 5, verbose_eval=False)

        scores = booster.get_score('total_gain')
        assert scores
        assert set(scores) <= {'age', 'income', 'tenure', 'balance'}
        assert all(value > 0 for value in scores.values())
        assert booster.get_fscore() == booster.get_score('weight')

    def test_weight_counts_splits(self, trained_booster):
        """Test that weights sum to the number of splits."""
        total_splits = sum(
            int(np.count_nonzero(tree.left_children != -1)) for tree in trained_booster.trees
        )
        assert sum(trained_booster.get_score('weight').values()) == total_splits

    @pytest.mark.parametrize("importance_type", ['weight', 'gain', 'total_gain', 'cover', 'total_cover'])
    def test_supplied_names_on_trained_booster(self, trained_booster, importance_type):
        """Test that a full name list names every key for each importance type."""
        names = [f"feature_{i}" for i in range(trained_booster.num_features())]
        scores = trained_booster.get_score(importance_type, feature_names=names)

        assert scores
        assert all(key.startswith("feature_") for key in scores)
        assert set(scores) <= set(names)
