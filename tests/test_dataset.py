# tests/test_dataset.py
"""Tests for the Dataset container."""

import pytest
import numpy as np
import pandas as pd

from tree_ensemble.data.dataset import Dataset, to_feature_matrix
from tree_ensemble.utils.exceptions import DataValidationError, DimensionError


class TestFeatureMatrix:
    """Test conversion of inputs to the feature matrix."""

    def test_conversion(self):
        """Test dtype and memory layout of the converted matrix."""
        matrix = to_feature_matrix([[1, 2], [3, 4]])
        assert matrix.dtype == np.float32
        assert matrix.flags['C_CONTIGUOUS']
        assert matrix.shape == (2, 2)

    def test_one_dimensional_is_single_row(self):
        """Test that a 1-D input becomes one row."""
        assert to_feature_matrix(np.arange(4)).shape == (1, 4)

    def test_missing_sentinel(self):
        """Test that the missing sentinel becomes NaN."""
        matrix = to_feature_matrix([[1.0, -999.0], [-999.0, 2.0]], missing=-999.0)
        assert np.isnan(matrix[0, 1]) and np.isnan(matrix[1, 0])
        assert matrix[1, 1] == 2.0

    def test_non_numeric(self):
        """Test that non-numeric input is rejected."""
        with pytest.raises(DataValidationError):
            to_feature_matrix([["a", "b"]])

    def test_three_dimensional(self):
        """Test that 3-D input is rejected."""
        with pytest.raises(DataValidationError):
            to_feature_matrix(np.zeros((2, 2, 2)))


class TestDataset:
    """Test cases for Dataset."""

    def test_dataframe_names(self, binary_frame):
        """Test that DataFrame columns become feature names."""
        dataset = Dataset(binary_frame.drop('target', axis=1), label=binary_frame['target'])
        assert dataset.feature_names == ['age', 'income', 'tenure', 'balance']
        assert dataset.num_row() == 400
        assert dataset.num_col() == 4

    def test_data_is_read_only(self):
        """Test that the feature matrix cannot be written."""
        dataset = Dataset(np.ones((3, 2)))
        with pytest.raises(ValueError):
            dataset.data[0, 0] = 5.0

    def test_source_is_copied(self):
        """Test that later changes to the source do not leak in."""
        source = np.ones((3, 2), dtype=np.float32)
        dataset = Dataset(source)
        source[0, 0] = 7.0
        assert dataset.data[0, 0] == 1.0

    def test_feature_name_checks(self):
        """Test validation of feature name lists."""
        dataset = Dataset(np.ones((3, 2)))
        with pytest.raises(DimensionError):
            dataset.feature_names = ['a']
        with pytest.raises(DataValidationError):
            dataset.feature_names = ['a', 'a']
        dataset.feature_names = ['a', 'b']
        assert dataset.feature_names == ['a', 'b']

    def test_label_length(self):
        """Test that a label of the wrong length is rejected."""
        with pytest.raises(DimensionError):
            Dataset(np.ones((3, 2)), label=[1, 2])

    def test_weights(self):
        """Test setting and validating row weights."""
        dataset = Dataset(np.ones((3, 2)), weight=[1, 2, 3])
        np.testing.assert_array_equal(dataset.get_weight(), [1, 2, 3])
        with pytest.raises(DataValidationError):
            dataset.set_weight([1, -1, 1])

    def test_row_buffer(self, regression_arrays):
        """Test single-row buffers and out-of-range rows."""
        X, _ = regression_arrays
        dataset = Dataset(X[:10])
        row = dataset.row_buffer(3)
        assert row.flags['C_CONTIGUOUS']
        np.testing.assert_array_equal(row, X[3])
        with pytest.raises(IndexError):
            dataset.row_buffer(10)

    def test_slice_carries_label_and_weight(self):
        """Test that slicing keeps labels and weights aligned."""
        frame = pd.DataFrame({'x': [0.0, 1.0, 2.0, 3.0], 'y': [4.0, 5.0, 6.0, 7.0]})
        dataset = Dataset(frame, label=[0, 1, 0, 1], weight=[1, 2, 3, 4])
        sliced = dataset.slice([3, 1])

        assert sliced.feature_names == ['x', 'y']
        np.testing.assert_array_equal(sliced.data[:, 0], [3.0, 1.0])
        np.testing.assert_array_equal(sliced.get_label(), [1, 1])
        np.testing.assert_array_equal(sliced.get_weight(), [4, 2])
