# tree_ensemble/models/grower.py
"""Default grow operation backed by scikit-learn.

Split search is delegated to ``DecisionTreeRegressor`` fitted on the
negative gradients. The resulting structure is then re-scored with
second-order statistics: Newton leaf values ``-eta * G / (H + lambda)``,
node covers (hessian sums) and split gains.

Randomness (row subsampling and the regressor's feature sampling) is
seeded with ``seed + booster.version``, so a resumed model grows the same
trees as an uninterrupted run.
"""

from typing import TYPE_CHECKING, Tuple

import numpy as np
from sklearn.tree import DecisionTreeRegressor

from ..config.params import BoosterParams
from ..data.dataset import Dataset
from ..utils.logger import get_logger
from ..utils.exceptions import ConfigurationError
from .inference import predict_margin
from .tree import LEAF, Tree

if TYPE_CHECKING:
    from .booster import Booster

logger = get_logger(__name__)


def node_statistics(
    children_left: np.ndarray,
    children_right: np.ndarray,
    leaf_index: np.ndarray,
    grad: np.ndarray,
    hess: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Sum gradients and hessians per node.

    Leaves are accumulated from the rows that reach them and internal
    nodes from their children. Children always carry larger indices than
    their parent, so one reverse pass suffices.

    Returns:
        ``(G, H)``, each of shape (num_nodes, outputs)
    """
    num_nodes = children_left.shape[0]
    num_outputs = grad.shape[1]
    G = np.zeros((num_nodes, num_outputs))
    H = np.zeros((num_nodes, num_outputs))
    np.add.at(G, leaf_index, grad)
    np.add.at(H, leaf_index, hess)
    for node in range(num_nodes - 1, -1, -1):
        left = children_left[node]
        if left != LEAF:
            right = children_right[node]
            G[node] = G[left] + G[right]
            H[node] = H[left] + H[right]
    return G, H


def split_gain(
    children_left: np.ndarray,
    children_right: np.ndarray,
    G: np.ndarray,
    H: np.ndarray,
    reg_lambda: float,
) -> np.ndarray:
    """Loss reduction of each split, summed over outputs; 0 for leaves."""
    score = (G ** 2 / (H + reg_lambda)).sum(axis=1)
    gain = np.zeros(children_left.shape[0])
    internal = children_left != LEAF
    gain[internal] = (
        score[children_left[internal]]
        + score[children_right[internal]]
        - score[internal]
    )
    return gain


class SklearnTreeGrower:
    """Grow one tree per round with scikit-learn split search.

    Interpreted parameters: ``eta``, ``lambda``, ``max_depth`` (0 means
    unlimited), ``max_leaves`` (0 means unlimited), ``subsample``,
    ``colsample_bynode`` and ``seed``.
    """

    def grow(self, booster: 'Booster', dtrain: Dataset, params: BoosterParams) -> Tree:
        objective = booster.objective
        label = np.asarray(dtrain.get_label(), dtype=np.float64)
        objective.validate_labels(label)

        data = dtrain.data
        num_rows = data.shape[0]
        if num_rows == 0:
            raise ConfigurationError("Cannot grow a tree on an empty dataset", error_code="EMPTY_TRAINING_DATA")

        weight = dtrain.get_weight()
        weight = np.ones(num_rows) if weight is None else np.asarray(weight, dtype=np.float64)

        margin = predict_margin(booster.trees, booster.base_margin(), data)
        grad, hess = objective.gradient(margin, label)

        seed = params.seed + booster.version
        rows = self._sample_rows(num_rows, params.subsample, seed)

        max_depth = params.max_depth
        max_leaves = params.max_leaves
        colsample = params.colsample_bynode
        if max_leaves == 1:
            raise ConfigurationError("max_leaves must be 0 or at least 2", error_code="BAD_MAX_LEAVES")

        regressor = DecisionTreeRegressor(
            max_depth=max_depth if max_depth > 0 else None,
            max_leaf_nodes=max_leaves if max_leaves > 0 else None,
            max_features=colsample if colsample < 1.0 else None,
            random_state=seed % 2 ** 32,
        )
        target = -grad[rows]
        if target.shape[1] == 1:
            target = target[:, 0]
        regressor.fit(data[rows], target, sample_weight=weight[rows])

        structure = regressor.tree_
        children_left = structure.children_left.astype(np.int32)
        children_right = structure.children_right.astype(np.int32)
        is_leaf = children_left == LEAF

        weighted_grad = grad[rows] * weight[rows, None]
        weighted_hess = hess[rows] * weight[rows, None]
        G, H = node_statistics(
            children_left, children_right,
            regressor.apply(data[rows]),
            weighted_grad, weighted_hess,
        )

        reg_lambda = params.reg_lambda
        leaf_values = -params.eta * G / (H + reg_lambda)
        gain = split_gain(children_left, children_right, G, H, reg_lambda)

        missing_left = getattr(structure, "missing_go_to_left", None)
        default_left = np.ones(structure.node_count, dtype=bool) if missing_left is None else missing_left.astype(bool)

        tree = Tree(
            left_children=children_left,
            right_children=children_right,
            split_indices=np.where(is_leaf, LEAF, structure.feature),
            split_conditions=np.where(is_leaf, 0.0, structure.threshold),
            default_left=default_left,
            leaf_values=leaf_values,
            gain=gain,
            cover=H.sum(axis=1),
        )
        logger.debug(f"Grew tree {booster.version} with {tree.num_leaves} leaves")
        return tree

    @staticmethod
    def _sample_rows(num_rows: int, subsample: float, seed: int) -> np.ndarray:
        if subsample >= 1.0:
            return np.arange(num_rows)
        rng = np.random.default_rng(seed)
        size = max(1, int(round(subsample * num_rows)))
        return np.sort(rng.choice(num_rows, size=size, replace=False))


def register_builtin_growers(registry) -> None:
    registry.register_grower("exact", SklearnTreeGrower)
    registry.register_grower("auto", SklearnTreeGrower)


def get_grower(params: BoosterParams):
    """Instantiate the grow operation registered for ``params.tree_method``."""
    # Import here to avoid circular imports
    from .registry import plugin_registry

    return plugin_registry.get_grower_class(params.tree_method)()
