# tree_ensemble/models/inference.py
"""Margin computation shared by batch and in-place prediction.

Both prediction paths end in :func:`predict_margin`, so a row yields the
same bits whichever path it comes through and whichever thread calls.
Nothing here mutates the trees.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from ..utils.exceptions import DimensionError, DataValidationError
from .tree import Tree


def select_trees(trees: Sequence[Tree], iteration_range: Tuple[int, int] = (0, 0)) -> Sequence[Tree]:
    """Return the trees of rounds ``[begin, end)``; ``(0, 0)`` selects all.

    Raises:
        DataValidationError: If the range is invalid for the ensemble
    """
    begin, end = int(iteration_range[0]), int(iteration_range[1])
    if begin == 0 and end == 0:
        return trees
    if begin < 0 or end < begin or end > len(trees):
        raise DataValidationError(
            f"Invalid iteration range {iteration_range} for {len(trees)} rounds",
            error_code="BAD_ITERATION_RANGE",
            context={'begin': begin, 'end': end, 'rounds': len(trees)}
        )
    return trees[begin:end]


def predict_margin(trees: Sequence[Tree], base_margin: np.ndarray, data: np.ndarray) -> np.ndarray:
    """Sum tree outputs over rows in tree order.

    Args:
        trees: Trees to evaluate, in round order
        base_margin: Initial margin per output, shape (outputs,)
        data: Float32 matrix (rows, features), NaN marks missing

    Returns:
        Float64 margins of shape (rows, outputs)
    """
    margin = np.tile(np.asarray(base_margin, dtype=np.float64), (data.shape[0], 1))
    for tree in trees:
        margin += tree.predict(data)
    return margin


def check_num_features(expected: Optional[int], actual: int) -> None:
    if expected is not None and expected != actual:
        raise DimensionError(
            f"Feature count mismatch: model expects {expected}, data has {actual}",
            error_code="FEATURE_COUNT_MISMATCH",
            context={'expected': expected, 'actual': actual}
        )


def prepare_buffer(
    data,
    num_rows: Optional[int],
    num_features: Optional[int],
    model_features: Optional[int],
    missing: float = np.nan
) -> np.ndarray:
    """Interpret a raw row-major buffer as a float32 (rows, features) matrix.

    A flat buffer needs ``num_features`` (or a trained model) to be
    reshaped. Declared sizes must agree with the buffer length.

    Raises:
        DimensionError: If the declared shape, buffer size and model disagree
    """
    array = np.asarray(data, dtype=np.float32)

    if array.ndim == 2:
        rows, cols = array.shape
        if num_rows is not None and num_rows != rows:
            raise DimensionError(
                f"num_rows={num_rows} does not match buffer with {rows} rows",
                error_code="BUFFER_SIZE_MISMATCH",
                context={'num_rows': num_rows, 'rows': rows}
            )
        if num_features is not None and num_features != cols:
            raise DimensionError(
                f"num_features={num_features} does not match buffer with {cols} columns",
                error_code="BUFFER_SIZE_MISMATCH",
                context={'num_features': num_features, 'cols': cols}
            )
    elif array.ndim <= 1:
        flat = array.reshape(-1)
        cols = num_features if num_features is not None else model_features
        if cols is None and num_rows:
            cols = flat.size // num_rows
        if not cols or flat.size % cols != 0:
            raise DimensionError(
                f"Buffer of {flat.size} values cannot be split into rows of {cols} features",
                error_code="BUFFER_SIZE_MISMATCH",
                context={'size': flat.size, 'num_features': cols}
            )
        rows = flat.size // cols
        if num_rows is not None and num_rows != rows:
            raise DimensionError(
                f"Buffer of {flat.size} values does not hold {num_rows} rows of {cols} features",
                error_code="BUFFER_SIZE_MISMATCH",
                context={'size': flat.size, 'num_rows': num_rows, 'num_features': cols}
            )
        array = flat.reshape(rows, cols)
    else:
        raise DimensionError(
            f"Prediction buffer must be 1 or 2 dimensional, got {array.ndim}",
            error_code="BUFFER_SIZE_MISMATCH"
        )

    check_num_features(model_features, array.shape[1])

    if missing is not None and not np.isnan(missing):
        mask = array == np.float32(missing)
        if np.any(mask):
            array = np.where(mask, np.float32(np.nan), array)
    return np.ascontiguousarray(array)
