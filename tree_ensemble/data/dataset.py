# tree_ensemble/data/dataset.py
"""Feature matrix container used for training, evaluation and prediction.

A ``Dataset`` holds a read-only float32 matrix whose missing entries are
NaN, plus an optional label and weight vector. Feature count is fixed for
the dataset's lifetime.
"""

from typing import Any, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..utils.logger import get_logger
from ..utils.exceptions import DataValidationError, DimensionError

logger = get_logger(__name__)

ArrayLike = Union[np.ndarray, pd.DataFrame, pd.Series, Sequence[Any]]


def to_feature_matrix(data: ArrayLike, missing: float = np.nan) -> np.ndarray:
    """Convert input data into a 2-D float32 matrix with NaN for missing.

    Args:
        data: Array, nested list or DataFrame
        missing: Value to treat as missing in addition to NaN

    Returns:
        C-contiguous float32 array of shape (rows, features)

    Raises:
        DataValidationError: If the data is not numeric or not 2-D
    """
    if isinstance(data, pd.DataFrame):
        values = data.to_numpy()
    else:
        values = data

    try:
        matrix = np.array(values, dtype=np.float32, order="C", copy=True)
    except (TypeError, ValueError) as e:
        raise DataValidationError(
            f"Feature data must be numeric: {e}",
            error_code="NON_NUMERIC_FEATURES"
        ) from e

    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    if matrix.ndim != 2:
        raise DataValidationError(
            f"Feature data must be 2-dimensional, got {matrix.ndim} dimensions",
            error_code="BAD_FEATURE_SHAPE",
            context={"shape": matrix.shape}
        )

    if missing is not None and not np.isnan(missing):
        matrix[matrix == np.float32(missing)] = np.nan

    return matrix


class Dataset:
    """Labeled feature matrix.

    Args:
        data: Feature data (numpy array, nested list or DataFrame)
        label: Optional target vector, one entry per row
        weight: Optional non-negative instance weights
        missing: Sentinel converted to NaN on construction
        feature_names: Optional feature names (taken from DataFrame columns
            when not given)
        feature_types: Optional feature type strings

    Example:
        >>> dtrain = Dataset(X_train, label=y_train)
        >>> dtrain.num_row(), dtrain.num_col()
        (800, 10)
    """

    def __init__(
        self,
        data: ArrayLike,
        label: Optional[ArrayLike] = None,
        weight: Optional[ArrayLike] = None,
        missing: float = np.nan,
        feature_names: Optional[List[str]] = None,
        feature_types: Optional[List[str]] = None,
    ) -> None:
        if feature_names is None and isinstance(data, pd.DataFrame):
            feature_names = [str(c) for c in data.columns]

        self._data = to_feature_matrix(data, missing)
        self._data.flags.writeable = False

        self._label: Optional[np.ndarray] = None
        self._weight: Optional[np.ndarray] = None
        self.feature_names = feature_names
        self.feature_types = feature_types

        if label is not None:
            self.set_label(label)
        if weight is not None:
            self.set_weight(weight)

        logger.debug(f"Created Dataset with {self.num_row()} rows and {self.num_col()} features")

    @property
    def data(self) -> np.ndarray:
        """Read-only float32 feature matrix."""
        return self._data

    @property
    def feature_names(self) -> Optional[List[str]]:
        return self._feature_names

    @feature_names.setter
    def feature_names(self, names: Optional[List[str]]) -> None:
        if names is not None:
            names = [str(n) for n in names]
            if len(names) != self.num_col():
                raise DimensionError(
                    f"Expected {self.num_col()} feature names, got {len(names)}",
                    error_code="FEATURE_NAMES_LENGTH",
                    context={"expected": self.num_col(), "actual": len(names)}
                )
            if len(set(names)) != len(names):
                raise DataValidationError(
                    "Feature names must be unique",
                    error_code="DUPLICATE_FEATURE_NAMES"
                )
        self._feature_names = names

    @property
    def feature_types(self) -> Optional[List[str]]:
        return self._feature_types

    @feature_types.setter
    def feature_types(self, types: Optional[List[str]]) -> None:
        if types is not None:
            types = [str(t) for t in types]
            if len(types) != self.num_col():
                raise DimensionError(
                    f"Expected {self.num_col()} feature types, got {len(types)}",
                    error_code="FEATURE_TYPES_LENGTH",
                    context={"expected": self.num_col(), "actual": len(types)}
                )
        self._feature_types = types

    def num_row(self) -> int:
        return int(self._data.shape[0])

    def num_col(self) -> int:
        return int(self._data.shape[1])

    def _as_vector(self, values: ArrayLike, name: str) -> np.ndarray:
        vector = np.asarray(values, dtype=np.float32).reshape(-1)
        if vector.shape[0] != self.num_row():
            raise DimensionError(
                f"{name} length {vector.shape[0]} does not match number of rows {self.num_row()}",
                error_code=f"{name.upper()}_LENGTH",
                context={"rows": self.num_row(), name: vector.shape[0]}
            )
        vector = vector.copy()
        vector.flags.writeable = False
        return vector

    def get_label(self) -> Optional[np.ndarray]:
        return self._label

    def set_label(self, label: ArrayLike) -> None:
        """Set the target vector.

        Raises:
            DimensionError: If the length differs from the row count
        """
        self._label = self._as_vector(label, "label")

    def get_weight(self) -> Optional[np.ndarray]:
        return self._weight

    def set_weight(self, weight: ArrayLike) -> None:
        """Set instance weights.

        Raises:
            DimensionError: If the length differs from the row count
            DataValidationError: If any weight is negative
        """
        vector = self._as_vector(weight, "weight")
        if np.any(vector < 0):
            raise DataValidationError(
                "Instance weights must be non-negative",
                error_code="NEGATIVE_WEIGHT"
            )
        self._weight = vector

    def row_buffer(self, index: int) -> np.ndarray:
        """Return one row as a contiguous float32 buffer."""
        if not -self.num_row() <= index < self.num_row():
            raise IndexError(f"Row index {index} out of range for {self.num_row()} rows")
        return np.ascontiguousarray(self._data[index])

    def slice(self, indices: Sequence[int]) -> "Dataset":
        """Create a new Dataset over a subset of rows.

        Args:
            indices: Row indices to keep, in order

        Returns:
            New Dataset sharing labels, weights and feature info for those rows
        """
        indices = np.asarray(indices, dtype=np.int64)
        sliced = Dataset(
            self._data[indices],
            feature_names=self._feature_names,
            feature_types=self._feature_types,
        )
        if self._label is not None:
            sliced.set_label(self._label[indices])
        if self._weight is not None:
            sliced.set_weight(self._weight[indices])
        return sliced

    def __repr__(self) -> str:
        return f"Dataset(rows={self.num_row()}, features={self.num_col()})"
