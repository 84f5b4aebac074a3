# tree_ensemble/models/tree.py
"""Array-backed regression tree.

A tree is stored as parallel, index-stable arrays. Node 0 is the root;
``left_children[i] == right_children[i] == -1`` marks a leaf. A row goes
to the left child when ``value <= split_conditions[i]`` and follows
``default_left[i]`` when the value is missing (NaN).
"""

import json
from collections import deque
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..utils.exceptions import FormatError

LEAF = -1

# Field order is part of the serialized format
TREE_FIELDS: Tuple[str, ...] = (
    "left_children",
    "right_children",
    "split_indices",
    "split_conditions",
    "default_left",
    "gain",
    "cover",
    "leaf_values",
)

_FIELD_DTYPES: Dict[str, Any] = {
    "left_children": np.int32,
    "right_children": np.int32,
    "split_indices": np.int32,
    "split_conditions": np.float64,
    "default_left": np.bool_,
    "gain": np.float64,
    "cover": np.float64,
    "leaf_values": np.float64,
}


class Tree:
    """One decision tree of the ensemble.

    Args:
        left_children: Left child index per node, -1 for leaves
        right_children: Right child index per node, -1 for leaves
        split_indices: Feature index tested at each internal node
        split_conditions: Threshold per node
        default_left: Whether missing values go left at each node
        leaf_values: Output per node, shape (num_nodes, num_outputs)
        gain: Loss reduction per internal node (0 for leaves)
        cover: Sum of hessians per node

    Raises:
        FormatError: If the arrays do not describe a valid binary tree
    """

    def __init__(
        self,
        left_children,
        right_children,
        split_indices,
        split_conditions,
        default_left,
        leaf_values,
        gain=None,
        cover=None,
    ) -> None:
        num_nodes = len(left_children)
        if gain is None:
            gain = np.zeros(num_nodes)
        if cover is None:
            cover = np.zeros(num_nodes)

        leaf_values = np.asarray(leaf_values, dtype=np.float64)
        if leaf_values.ndim == 1:
            leaf_values = leaf_values.reshape(-1, 1)

        arrays = {
            "left_children": left_children,
            "right_children": right_children,
            "split_indices": split_indices,
            "split_conditions": split_conditions,
            "default_left": default_left,
            "gain": gain,
            "cover": cover,
            "leaf_values": leaf_values,
        }
        for name in TREE_FIELDS:
            array = np.array(arrays[name], dtype=_FIELD_DTYPES[name], order="C", copy=True)
            array.flags.writeable = False
            setattr(self, name, array)

        self._validate()

    @classmethod
    def from_arrays(cls, arrays: Dict[str, np.ndarray]) -> "Tree":
        """Build a tree from a mapping of field name to array."""
        missing = [name for name in TREE_FIELDS if name not in arrays]
        if missing:
            raise FormatError(
                f"Tree is missing fields: {missing}",
                error_code="TREE_FIELDS_MISSING"
            )
        return cls(**{name: arrays[name] for name in TREE_FIELDS})

    def to_arrays(self) -> Dict[str, np.ndarray]:
        return {name: getattr(self, name) for name in TREE_FIELDS}

    def _validate(self) -> None:
        n = self.num_nodes
        if n == 0:
            raise FormatError("Tree must have at least one node", error_code="EMPTY_TREE")

        for name in TREE_FIELDS:
            array = getattr(self, name)
            expected_ndim = 2 if name == "leaf_values" else 1
            if array.ndim != expected_ndim or array.shape[0] != n:
                raise FormatError(
                    f"Tree field '{name}' has shape {array.shape}, expected {n} nodes",
                    error_code="TREE_FIELD_SHAPE",
                    context={"field": name, "shape": array.shape, "num_nodes": n}
                )
        if self.leaf_values.shape[1] < 1:
            raise FormatError("Tree leaves must have at least one output", error_code="TREE_FIELD_SHAPE")

        left, right = self.left_children, self.right_children
        is_leaf = left == LEAF
        if np.any(is_leaf != (right == LEAF)):
            bad = int(np.flatnonzero(is_leaf != (right == LEAF))[0])
            raise FormatError(
                f"Node {bad} must have either two children or none",
                error_code="TREE_NODE_ARITY",
                context={"node": bad}
            )

        children = np.concatenate([left[~is_leaf], right[~is_leaf]])
        if np.any((children < 1) | (children >= n)):
            raise FormatError(
                "Child index out of range",
                error_code="TREE_CHILD_RANGE",
                context={"num_nodes": n}
            )
        parent_count = np.bincount(children, minlength=n)
        if parent_count[0] != 0 or np.any(parent_count[1:] != 1):
            raise FormatError(
                "Every non-root node must have exactly one parent",
                error_code="TREE_PARENT_COUNT"
            )
        if np.any(self.split_indices[~is_leaf] < 0):
            raise FormatError("Split feature index must be non-negative", error_code="TREE_SPLIT_INDEX")

        # One parent per node still allows detached cycles
        seen = 0
        queue = deque([0])
        while queue:
            node = queue.popleft()
            seen += 1
            if not is_leaf[node]:
                queue.append(int(left[node]))
                queue.append(int(right[node]))
        if seen != n:
            raise FormatError(
                "Tree contains nodes unreachable from the root",
                error_code="TREE_UNREACHABLE",
                context={"reachable": seen, "num_nodes": n}
            )

    @property
    def num_nodes(self) -> int:
        return int(self.left_children.shape[0])

    @property
    def num_outputs(self) -> int:
        return int(self.leaf_values.shape[1])

    def is_leaf(self, node: int) -> bool:
        return bool(self.left_children[node] == LEAF)

    @property
    def num_leaves(self) -> int:
        return int(np.count_nonzero(self.left_children == LEAF))

    def max_split_feature(self) -> int:
        """Largest feature index used by a split, or -1 for a stump."""
        internal = self.left_children != LEAF
        if not np.any(internal):
            return -1
        return int(self.split_indices[internal].max())

    def apply(self, data: np.ndarray) -> np.ndarray:
        """Return the leaf index reached by each row.

        Args:
            data: Float32 matrix of shape (rows, features), NaN for missing

        Returns:
            Int array of leaf indices
        """
        nodes = np.zeros(data.shape[0], dtype=np.int64)
        active = np.flatnonzero(self.left_children[nodes] != LEAF)
        while active.size:
            current = nodes[active]
            values = data[active, self.split_indices[current]]
            go_left = np.where(
                np.isnan(values),
                self.default_left[current],
                values <= self.split_conditions[current],
            )
            nodes[active] = np.where(go_left, self.left_children[current], self.right_children[current])
            active = active[self.left_children[nodes[active]] != LEAF]
        return nodes

    def predict(self, data: np.ndarray) -> np.ndarray:
        """Leaf values for each row, shape (rows, num_outputs)."""
        return self.leaf_values[self.apply(data)]

    # Dumps -----------------------------------------------------------------

    def _feature_label(self, index: int, feature_names: Optional[List[str]]) -> str:
        if feature_names is None:
            return f"f{index}"
        if index >= len(feature_names):
            raise IndexError(f"Feature index {index} has no name ({len(feature_names)} names given)")
        return feature_names[index]

    def _leaf_repr(self, node: int) -> Any:
        values = self.leaf_values[node]
        if values.shape[0] == 1:
            return float(values[0])
        return [float(v) for v in values]

    def dump_text(self, feature_names: Optional[List[str]] = None, with_stats: bool = False) -> str:
        """Render the tree as indented text, one node per line."""
        lines: List[str] = []
        stack = [(0, 0)]
        while stack:
            node, depth = stack.pop()
            indent = "\t" * depth
            if self.is_leaf(node):
                line = f"{indent}{node}:leaf={self._leaf_repr(node)}"
                if with_stats:
                    line += f",cover={float(self.cover[node]):g}"
            else:
                yes = int(self.left_children[node])
                no = int(self.right_children[node])
                missing = yes if self.default_left[node] else no
                name = self._feature_label(int(self.split_indices[node]), feature_names)
                line = (
                    f"{indent}{node}:[{name}<={float(self.split_conditions[node]):.9g}] "
                    f"yes={yes},no={no},missing={missing}"
                )
                if with_stats:
                    line += f",gain={float(self.gain[node]):g},cover={float(self.cover[node]):g}"
                stack.append((no, depth + 1))
                stack.append((yes, depth + 1))
            lines.append(line)
        return "\n".join(lines) + "\n"

    def to_json_dict(
        self,
        feature_names: Optional[List[str]] = None,
        with_stats: bool = False,
        node: int = 0,
        depth: int = 0,
    ) -> Dict[str, Any]:
        """Nested dictionary form of the subtree rooted at ``node``."""
        if self.is_leaf(node):
            entry: Dict[str, Any] = {"nodeid": node, "leaf": self._leaf_repr(node)}
            if with_stats:
                entry["cover"] = float(self.cover[node])
            return entry

        yes = int(self.left_children[node])
        no = int(self.right_children[node])
        entry = {
            "nodeid": node,
            "depth": depth,
            "split": self._feature_label(int(self.split_indices[node]), feature_names),
            "split_condition": float(self.split_conditions[node]),
            "yes": yes,
            "no": no,
            "missing": yes if self.default_left[node] else no,
        }
        if with_stats:
            entry["gain"] = float(self.gain[node])
            entry["cover"] = float(self.cover[node])
        entry["children"] = [
            self.to_json_dict(feature_names, with_stats, yes, depth + 1),
            self.to_json_dict(feature_names, with_stats, no, depth + 1),
        ]
        return entry

    def dump(
        self,
        feature_names: Optional[List[str]] = None,
        with_stats: bool = False,
        dump_format: str = "text",
    ) -> str:
        if dump_format == "text":
            return self.dump_text(feature_names, with_stats)
        if dump_format == "json":
            return json.dumps(self.to_json_dict(feature_names, with_stats), indent=2)
        raise ValueError(f"Unknown dump format: {dump_format}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tree):
            return NotImplemented
        return all(np.array_equal(getattr(self, f), getattr(other, f)) for f in TREE_FIELDS)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Tree(nodes={self.num_nodes}, leaves={self.num_leaves}, outputs={self.num_outputs})"
