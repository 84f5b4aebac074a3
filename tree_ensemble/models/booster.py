# tree_ensemble/models/booster.py
"""Boosted tree ensemble: model state, prediction and persistence.

A ``Booster`` owns an append-only list of trees, its parameters, the
attribute store, a round counter (``version``) and the trained feature
layout. Prediction only reads a snapshot of the tree list and never
mutates the model, so any number of threads may predict concurrently as
long as no training round is appending to the same booster.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..config.params import BoosterParams
from ..data.dataset import Dataset
from ..utils.exceptions import (
    ConfigurationError,
    DataValidationError,
    FormatError,
    ModelTrainingError,
    handle_and_reraise,
)
from ..utils.logger import get_logger
from ..utils.timer import timer, timed_operation
from ..utils.error_handling import model_operation_context
from .attributes import AttributeStore
from .evaluation import format_eval_line, normalize_watchlist, resolve_metrics, WatchList
from .inference import check_num_features, predict_margin, prepare_buffer, select_trees
from .objectives import Objective, get_objective
from .serialization import Source, Target, decode_model, encode_model, read_source, write_target
from .tree import Tree

logger = get_logger(__name__)


class Booster:
    """Gradient boosted tree ensemble.

    Args:
        params: Boosting parameters (mapping or BoosterParams)
        model_file: Optional path, stream or bytes to load a saved model from

    Example:
        >>> booster = Booster({'objective': 'binary:logistic'})
        >>> booster.update(dtrain)
        >>> preds = booster.predict(dtest)
    """

    def __init__(
        self,
        params: Optional[Union[Mapping[str, Any], BoosterParams]] = None,
        model_file: Optional[Source] = None,
    ) -> None:
        self.params = params.copy() if isinstance(params, BoosterParams) else BoosterParams(params)
        self._trees: Tuple[Tree, ...] = ()
        self._version = 0
        self._num_feature: Optional[int] = None
        self.feature_names: Optional[List[str]] = None
        self.feature_types: Optional[List[str]] = None
        self._attributes = AttributeStore()

        if model_file is not None:
            self.load_model(model_file)

    # Model state -------------------------------------------------------------

    @property
    def trees(self) -> Tuple[Tree, ...]:
        """Snapshot of the ensemble in round order."""
        return self._trees

    @property
    def version(self) -> int:
        return self._version

    def set_version(self, version: int) -> None:
        """Override the round counter, e.g. after restoring a model."""
        if isinstance(version, bool) or not isinstance(version, (int, np.integer)) or version < 0:
            raise ConfigurationError(
                f"Version must be a non-negative integer, got {version!r}",
                error_code="BAD_VERSION"
            )
        self._version = int(version)

    def num_boosted_rounds(self) -> int:
        return len(self._trees)

    def num_features(self) -> Optional[int]:
        return self._num_feature

    @property
    def objective(self) -> Objective:
        return get_objective(self.params)

    def num_output(self) -> int:
        return self.objective.num_output()

    def base_margin(self) -> np.ndarray:
        return self.objective.base_margin()

    def set_param(self, params: Union[str, Mapping[str, Any]], value: Any = None) -> None:
        """Set one parameter (``set_param('eta', 0.1)``) or several from a mapping.

        Raises:
            ConfigurationError: If the change would alter the number of
                outputs of a model that already has trees
        """
        candidate = self.params.copy()
        if isinstance(params, Mapping):
            candidate.update(params)
        else:
            candidate[params] = value
        self.check_params_compatible(candidate)
        self.params = candidate

    def check_params_compatible(self, params: BoosterParams) -> None:
        """Check that ``params`` keep the output count of the trained trees."""
        if not self._trees:
            return
        num_output = get_objective(params).num_output()
        trained = self._trees[0].num_outputs
        if num_output != trained:
            raise ConfigurationError(
                f"Parameters give {num_output} outputs, the trained trees have {trained}",
                error_code="OUTPUT_COUNT_CHANGE",
                context={'objective': params.objective, 'num_class': params.num_class}
            )

    # Attribute store ---------------------------------------------------------

    def set_attr(self, key: str, value: Optional[str]) -> None:
        self._attributes.set_attr(key, value)

    def set_attrs(self, attrs: Mapping[str, Optional[str]]) -> None:
        self._attributes.set_attrs(attrs)

    def get_attr(self, key: str) -> Optional[str]:
        return self._attributes.get_attr(key)

    def get_attrs(self) -> Dict[str, str]:
        return self._attributes.get_attrs()

    def attr_names(self) -> List[str]:
        return self._attributes.attr_names()

    @property
    def best_iteration(self) -> Optional[int]:
        value = self.get_attr("best_iteration")
        return None if value is None else int(value)

    @property
    def best_score(self) -> Optional[float]:
        value = self.get_attr("best_score")
        return None if value is None else float(value)

    # Training ----------------------------------------------------------------

    def _check_training_data(self, dtrain: Dataset) -> None:
        if dtrain.get_label() is None:
            raise DataValidationError(
                "Training dataset has no labels",
                error_code="MISSING_LABEL"
            )
        check_num_features(self._num_feature, dtrain.num_col())

    def update(self, dtrain: Dataset, grower: Any = None) -> Tree:
        """Run one boosting round: grow a tree and append it.

        A failure inside the grow operation leaves the model untouched.

        Args:
            dtrain: Training data with labels
            grower: Grow operation; defaults to the registered ``tree_method``

        Returns:
            The appended tree

        Raises:
            DimensionError: If the feature count differs from the trained model
            ModelTrainingError: If the grow operation fails
        """
        self._check_training_data(dtrain)
        if grower is None:
            # Import here to avoid circular imports
            from .grower import get_grower
            grower = get_grower(self.params)

        with model_operation_context(
            'grow_tree',
            component_name='Booster',
            user_data={'round': self._version},
            reraise_as=ModelTrainingError
        ):
            with timed_operation('grow_tree'):
                tree = grower.grow(self, dtrain, self.params)

        if not isinstance(tree, Tree):
            raise ModelTrainingError(
                f"Grow operation returned {type(tree).__name__}, expected Tree",
                error_code="GROW_BAD_RESULT",
                context={'round': self._version}
            )
        if tree.num_outputs != self.num_output():
            raise ModelTrainingError(
                f"Grown tree has {tree.num_outputs} outputs, model expects {self.num_output()}",
                error_code="GROW_BAD_RESULT",
                context={'round': self._version}
            )
        if tree.max_split_feature() >= dtrain.num_col():
            raise ModelTrainingError(
                "Grown tree splits on a feature outside the training data",
                error_code="GROW_BAD_RESULT",
                context={'round': self._version}
            )

        self._commit(tree, dtrain)
        return tree

    def _commit(self, tree: Tree, dtrain: Dataset) -> None:
        if self._num_feature is None:
            self._num_feature = dtrain.num_col()
            if self.feature_names is None:
                self.feature_names = dtrain.feature_names
            if self.feature_types is None:
                self.feature_types = dtrain.feature_types
        # The new tuple is published in a single assignment
        self._trees = self._trees + (tree,)
        self._version += 1

    def evaluate(self, evals: WatchList, feval: Any = None) -> List[Tuple[str, str, float]]:
        """Score every watch-list entry with every active metric.

        Returns:
            ``(name, metric_name, score)`` triples in watch-list order
        """
        watchlist = normalize_watchlist(evals)
        objective = self.objective
        metrics = resolve_metrics(self.params, objective.default_metric, feval)
        results: List[Tuple[str, str, float]] = []
        for dataset, name in watchlist:
            margin = self._margin(dataset.data, dataset.feature_names, validate_features=True)
            builtin_preds = None
            custom_preds = None
            for metric, is_builtin in metrics:
                if is_builtin:
                    if builtin_preds is None:
                        builtin_preds = objective.eval_transform(margin)
                    score = metric.eval(builtin_preds, dataset)
                else:
                    if custom_preds is None:
                        custom_preds = objective.transform(margin)
                    score = metric.eval(custom_preds, dataset)
                results.append((name, metric.metric_name, float(score)))
        return results

    def eval_set(self, evals: WatchList, iteration: int = 0, feval: Any = None) -> str:
        """Evaluate and format one ``[i]\\tname-metric:score`` line."""
        return format_eval_line(iteration, self.evaluate(evals, feval))

    # Prediction --------------------------------------------------------------

    def _check_feature_names(self, names: Optional[Sequence[str]]) -> None:
        if self.feature_names is not None and names is not None and list(names) != list(self.feature_names):
            raise DataValidationError(
                "Feature names of the data do not match the model",
                error_code="FEATURE_NAMES_MISMATCH",
                context={'expected': list(self.feature_names), 'actual': list(names)}
            )

    def _margin(
        self,
        data: np.ndarray,
        feature_names: Optional[Sequence[str]] = None,
        iteration_range: Tuple[int, int] = (0, 0),
        validate_features: bool = True,
    ) -> np.ndarray:
        trees = self._trees
        check_num_features(self._num_feature, data.shape[1])
        if validate_features:
            self._check_feature_names(feature_names)
        return predict_margin(select_trees(trees, iteration_range), self.base_margin(), data)

    def predict(
        self,
        data: Dataset,
        output_margin: bool = False,
        iteration_range: Tuple[int, int] = (0, 0),
        validate_features: bool = True,
    ) -> np.ndarray:
        """Predict for every row of a Dataset.

        Args:
            data: Rows to score
            output_margin: Return raw margins instead of transformed output
            iteration_range: Rounds ``[begin, end)`` to use, ``(0, 0)`` for all
            validate_features: Check feature names against the model

        Returns:
            Float64 matrix of shape (rows, outputs)

        Raises:
            DimensionError: If the feature count differs from the model
            DataValidationError: If feature names differ from the model
        """
        if not isinstance(data, Dataset):
            raise DataValidationError(
                f"predict() expects a Dataset, got {type(data).__name__}; use inplace_predict for raw buffers",
                error_code="NOT_A_DATASET"
            )
        margin = self._margin(data.data, data.feature_names, iteration_range, validate_features)
        return margin if output_margin else self.objective.transform(margin)

    def inplace_predict(
        self,
        data,
        num_rows: Optional[int] = None,
        num_features: Optional[int] = None,
        missing: float = np.nan,
        output_margin: bool = False,
        iteration_range: Tuple[int, int] = (0, 0),
    ) -> np.ndarray:
        """Predict directly from a row-major buffer without building a Dataset.

        Args:
            data: Flat or 2-D buffer of feature values
            num_rows: Declared row count (checked against the buffer)
            num_features: Declared feature count (checked against the model)
            missing: Value treated as missing in addition to NaN
            output_margin: Return raw margins instead of transformed output
            iteration_range: Rounds ``[begin, end)`` to use, ``(0, 0)`` for all

        Returns:
            Float64 matrix of shape (rows, outputs)
        """
        matrix = prepare_buffer(data, num_rows, num_features, self._num_feature, missing)
        margin = self._margin(matrix, None, iteration_range, validate_features=False)
        return margin if output_margin else self.objective.transform(margin)

    # Persistence -------------------------------------------------------------

    def _meta(self) -> Dict[str, Any]:
        return {
            "version": self._version,
            "num_feature": self._num_feature,
            "num_output": self.num_output(),
            "params": self.params.to_dict(),
            "attributes": self.get_attrs(),
            "feature_names": self.feature_names,
            "feature_types": self.feature_types,
        }

    def save_raw(self) -> bytes:
        """Serialize the model to bytes."""
        return encode_model(self._meta(), list(self._trees))

    @timer(name="save_model", log_result=False)
    def save_model(self, target: Target) -> None:
        """Save the model to a path or binary writable stream.

        Raises:
            ModelIOError: If the target cannot be written
        """
        write_target(self.save_raw(), target)
        if isinstance(target, (str, Path)):
            logger.info(f"Saved model with {self.num_boosted_rounds()} trees to {target}")

    @timer(name="load_model", log_result=False)
    def load_model(self, source: Source) -> "Booster":
        """Replace this model's state with a saved model.

        Args:
            source: Path, readable binary stream or bytes

        Returns:
            self

        Raises:
            FormatError: If the data is not a valid model
            ModelIOError: If the source cannot be read
        """
        meta, trees = decode_model(read_source(source))
        try:
            params = BoosterParams(meta["params"])
            attributes = AttributeStore(meta["attributes"])
            version = int(meta["version"])
            num_feature = meta["num_feature"]
            num_output = int(meta["num_output"])
            feature_names = meta["feature_names"]
            feature_types = meta["feature_types"]
        except (KeyError, TypeError, ValueError, ConfigurationError) as e:
            handle_and_reraise(e, FormatError, "Malformed model metadata", error_code="MALFORMED_META")

        for tree in trees:
            if tree.num_outputs != num_output:
                raise FormatError(
                    f"Tree with {tree.num_outputs} outputs in a model with {num_output}",
                    error_code="TREE_OUTPUT_MISMATCH"
                )
            if num_feature is not None and tree.max_split_feature() >= num_feature:
                raise FormatError("Tree splits on a feature beyond num_feature", error_code="TREE_FEATURE_RANGE")

        self.params = params
        self._attributes = attributes
        self._num_feature = None if num_feature is None else int(num_feature)
        self.feature_names = feature_names
        self.feature_types = feature_types
        self._trees = tuple(trees)
        self._version = version
        logger.debug(f"Loaded model with {len(trees)} trees at version {version}")
        return self

    def save_config(self) -> str:
        """Return the parameters as a JSON string."""
        return json.dumps({"params": self.params.to_dict()}, sort_keys=True)

    def load_config(self, config: str) -> None:
        """Restore parameters from :meth:`save_config` output."""
        try:
            parsed = json.loads(config)
            params = parsed["params"]
        except (ValueError, KeyError, TypeError) as e:
            handle_and_reraise(e, ConfigurationError, "Invalid booster config", error_code="BAD_CONFIG_JSON")
        candidate = BoosterParams(params)
        self.check_params_compatible(candidate)
        self.params = candidate

    def copy(self) -> "Booster":
        return Booster(model_file=self.save_raw())

    def __copy__(self) -> "Booster":
        return self.copy()

    def __deepcopy__(self, memo) -> "Booster":
        return self.copy()

    def __getstate__(self) -> Dict[str, Any]:
        return {"raw": self.save_raw()}

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self.__init__(model_file=state["raw"])

    def __getitem__(self, key: slice) -> "Booster":
        """Slice rounds into a new Booster, e.g. ``booster[2:5]``.

        The new model's version is the number of kept rounds.
        """
        if not isinstance(key, slice):
            raise TypeError("Booster only supports slicing by rounds, e.g. booster[0:10]")
        if key.step not in (None, 1):
            raise ValueError("Booster slicing does not support a step")
        begin, end, _ = key.indices(len(self._trees))
        if end < begin:
            end = begin

        sliced = self.copy()
        sliced._trees = self._trees[begin:end]
        sliced._version = len(sliced._trees)
        return sliced

    # Introspection -----------------------------------------------------------

    def get_dump(
        self,
        fmap: Optional[Sequence[str]] = None,
        with_stats: bool = False,
        dump_format: str = "text",
    ) -> List[str]:
        """Return one text or JSON dump per tree."""
        names = list(fmap) if fmap is not None else self.feature_names
        return [tree.dump(names, with_stats, dump_format) for tree in self._trees]

    def dump_model(
        self,
        fout: Union[str, Path],
        fmap: Optional[Sequence[str]] = None,
        with_stats: bool = False,
        dump_format: str = "text",
    ) -> None:
        """Write all tree dumps to a file."""
        dumps = self.get_dump(fmap, with_stats, dump_format)
        with open(fout, "w", encoding="utf-8") as f:
            if dump_format == "json":
                f.write("[\n" + ",\n".join(dumps) + "\n]\n")
            else:
                for i, dump in enumerate(dumps):
                    f.write(f"booster[{i}]:\n{dump}")

    def get_score(self, importance_type: str = "weight", feature_names: Optional[Sequence[str]] = None) -> Dict[str, float]:
        """Per-feature importance over all splits in the ensemble."""
        # Import here to avoid circular imports
        from ..explainability.importance import FeatureImportanceAggregator

        names = feature_names if feature_names is not None else self.feature_names
        aggregator = FeatureImportanceAggregator(self._trees, self._num_feature)
        return aggregator.compute(importance_type, names)

    def get_fscore(self, feature_names: Optional[Sequence[str]] = None) -> Dict[str, float]:
        return self.get_score("weight", feature_names)

    def __len__(self) -> int:
        return len(self._trees)

    def __repr__(self) -> str:
        return (
            f"Booster(objective={self.params.objective!r}, rounds={len(self._trees)}, "
            f"version={self._version}, num_feature={self._num_feature})"
        )
