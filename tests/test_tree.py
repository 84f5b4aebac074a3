# tests/test_tree.py
"""Tests for tree structure validation and dumps."""

import json

import pytest
import numpy as np

from tree_ensemble.models.tree import Tree
from tree_ensemble.utils.exceptions import FormatError


def make_tree(left, right, split=None, leaf_values=None):
    n = len(left)
    return Tree(
        left_children=left,
        right_children=right,
        split_indices=split if split is not None else [0] * n,
        split_conditions=[0.5] * n,
        default_left=[True] * n,
        leaf_values=leaf_values if leaf_values is not None else np.arange(n, dtype=float),
        gain=[1.5] + [0.0] * (n - 1),
        cover=[10.0] * n,
    )


class TestTreeValidation:
    """Test structural validation of trees."""

    def test_valid_tree(self):
        """Test that a well-formed tree is accepted."""
        tree = make_tree([1, -1, -1], [2, -1, -1])
        assert tree.num_nodes == 3
        assert tree.num_leaves == 2
        assert tree.num_outputs == 1

    def test_single_child(self):
        """Test that a node with one child is rejected."""
        with pytest.raises(FormatError):
            make_tree([1, -1, -1], [-1, -1, -1])

    def test_two_parents(self):
        """Test that a node with two parents is rejected."""
        with pytest.raises(FormatError):
            make_tree([1, 2, -1], [2, 2, -1])

    def test_child_out_of_range(self):
        """Test that a child index out of range is rejected."""
        with pytest.raises(FormatError):
            make_tree([1, -1, -1], [5, -1, -1])

    def test_root_as_child(self):
        """Test that the root cannot be a child."""
        with pytest.raises(FormatError):
            make_tree([1, 0, -1], [2, 0, -1])

    def test_detached_cycle(self):
        """Test that a cycle detached from the root is rejected."""
        with pytest.raises(FormatError):
            make_tree([1, -1, -1, 4, -1], [2, -1, -1, 3, -1])

    def test_negative_split_feature(self):
        """Test that a negative split feature is rejected."""
        with pytest.raises(FormatError):
            make_tree([1, -1, -1], [2, -1, -1], split=[-1, -1, -1])

    def test_mismatched_field_length(self):
        """Test that arrays of different lengths are rejected."""
        with pytest.raises(FormatError):
            make_tree([1, -1, -1], [2, -1, -1], leaf_values=[0.0, 1.0])

    def test_arrays_are_read_only(self):
        """Test that tree arrays cannot be written."""
        tree = make_tree([1, -1, -1], [2, -1, -1])
        with pytest.raises(ValueError):
            tree.leaf_values[0, 0] = 3.0


class TestTreeDump:
    """Test text and JSON dumps."""

    def test_text_dump_with_names(self):
        """Test the text dump with feature names and stats."""
        tree = make_tree([1, -1, -1], [2, -1, -1])
        dump = tree.dump(feature_names=['age'], with_stats=True)
        lines = dump.splitlines()

        assert lines[0] == "0:[age<=0.5] yes=1,no=2,missing=1,gain=1.5,cover=10"
        assert lines[1] == "\t1:leaf=1.0,cover=10"
        assert lines[2] == "\t2:leaf=2.0,cover=10"

    def test_json_dump(self):
        """Test the JSON dump."""
        tree = make_tree([1, -1, -1], [2, -1, -1])
        parsed = json.loads(tree.dump(dump_format='json'))

        assert parsed['split'] == 'f0'
        assert parsed['split_condition'] == 0.5
        assert [child['leaf'] for child in parsed['children']] == [1.0, 2.0]

    def test_vector_leaves(self):
        """Test the dump of multi-output leaves."""
        tree = make_tree([1, -1, -1], [2, -1, -1], leaf_values=[[0, 0], [1, 2], [3, 4]])
        assert tree.num_outputs == 2
        assert "1:leaf=[1.0, 2.0]" in tree.dump()

    def test_booster_dump_model(self, trained_booster, tmp_path):
        """Test dumping a whole model to a file."""
        dumps = trained_booster.get_dump(with_stats=True)
        assert len(dumps) == 5
        assert all(dump.startswith("0:") for dump in dumps)

        out = tmp_path / "dump.txt"
        trained_booster.dump_model(out)
        text = out.read_text()
        assert text.startswith("booster[0]:\n")
        assert "booster[4]:" in text

    def test_unknown_format(self):
        """Test that an unknown dump format is rejected."""
        with pytest.raises(ValueError):
            make_tree([1, -1, -1], [2, -1, -1]).dump(dump_format='xml')
