# tree_ensemble/models/trainer.py
"""Training loop with per-round evaluation, early stopping and cross validation.

Each round grows one tree, scores every watch-list entry with every
active metric and records the scores. Early stopping watches the last
active metric of the last watch-list entry.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold

from ..config.params import BoosterParams
from ..data.dataset import Dataset
from ..utils.exceptions import ConfigurationError, DimensionError, validate_parameter
from ..utils.logger import get_logger
from ..utils.timer import timer
from .booster import Booster
from .early_stopping import EarlyStoppingMonitor, early_stopping_enabled
from .evaluation import (
    WatchList,
    format_eval_line,
    metric_direction,
    normalize_watchlist,
    record_history,
    resolve_metrics,
)
from .objectives import get_objective
from .serialization import Source

logger = get_logger(__name__)

ParamsLike = Union[Mapping[str, Any], BoosterParams]


def _should_log(verbose_eval: Union[bool, int, None], iteration: int) -> bool:
    if verbose_eval is None or verbose_eval is False:
        return False
    if verbose_eval is True:
        return True
    return int(verbose_eval) > 0 and iteration % int(verbose_eval) == 0


class ModelTrainer:
    """Runs boosting rounds against a training Dataset.

    Args:
        grower: Grow operation used for every round; defaults to the one
            registered for the ``tree_method`` parameter
        verbose_eval: True logs every round, an int logs every n-th round

    Example:
        >>> trainer = ModelTrainer()
        >>> booster = trainer.train(params, dtrain, num_boost_round=50,
        ...                         evals=[(dtrain, 'train'), (dvalid, 'valid')],
        ...                         early_stopping_rounds=5)
    """

    def __init__(self, grower: Any = None, verbose_eval: Union[bool, int] = True) -> None:
        self.grower = grower
        self.verbose_eval = verbose_eval

    def _prepare_booster(
        self,
        params: BoosterParams,
        init_model: Optional[Union[Booster, Source]],
    ) -> Tuple[Booster, BoosterParams]:
        """Return the booster to train and the parameters it will train with.

        A resumed booster is not modified here; the merged parameters are
        applied only after every check before round 0 has passed.
        """
        if init_model is None:
            booster = Booster(params)
            return booster, booster.params
        if isinstance(init_model, Booster):
            booster = init_model
        else:
            booster = Booster(model_file=init_model)
        merged = booster.params.copy()
        merged.update(params.to_dict())
        return booster, merged

    @staticmethod
    def _check_metrics_buffer(metrics: Optional[np.ndarray], num_evals: int, num_boost_round: int) -> None:
        if metrics is None:
            return
        expected = (num_evals, num_boost_round)
        if not isinstance(metrics, np.ndarray) or metrics.shape != expected:
            shape = getattr(metrics, 'shape', None)
            raise ConfigurationError(
                f"metrics buffer must be an array of shape {expected}, got {shape}",
                error_code="BAD_METRICS_BUFFER",
                context={'expected': expected, 'actual': shape}
            )
        if not metrics.flags.writeable:
            raise ConfigurationError("metrics buffer must be writeable", error_code="BAD_METRICS_BUFFER")

    @timer(name="train")
    def train(
        self,
        params: ParamsLike,
        dtrain: Dataset,
        num_boost_round: int = 10,
        evals: Optional[WatchList] = None,
        feval: Any = None,
        early_stopping_rounds: Optional[int] = None,
        evals_result: Optional[Dict[str, Dict[str, List[float]]]] = None,
        metrics: Optional[np.ndarray] = None,
        init_model: Optional[Union[Booster, Source]] = None,
    ) -> Booster:
        """Train a booster.

        Args:
            params: Boosting parameters
            dtrain: Training data with labels
            num_boost_round: Number of rounds to run
            evals: Watch-list of ``(Dataset, name)`` pairs or a name to Dataset mapping
            feval: Custom evaluation function, evaluated after the built-in metrics
            early_stopping_rounds: Patience; ``None`` or ``<= 0`` disables early stopping
            evals_result: Dict filled with ``{name: {metric: [scores]}}``
            metrics: Optional array of shape (len(evals), num_boost_round)
                receiving the active metric score of each entry per round
            init_model: Booster (extended in place), path, stream or bytes to resume from

        Returns:
            The trained Booster

        Raises:
            ConfigurationError: On invalid parameters, watch-list or buffer
            DimensionError: If feature counts of the datasets and model disagree
            ModelTrainingError: If the grow operation fails
        """
        params = params.copy() if isinstance(params, BoosterParams) else BoosterParams(params)
        params.validate()
        validate_parameter("num_boost_round", num_boost_round, min_value=0)

        watchlist = normalize_watchlist(evals)
        use_early_stopping = early_stopping_enabled(early_stopping_rounds)
        if use_early_stopping and not watchlist:
            raise ConfigurationError(
                "Early stopping requires at least one watch-list entry",
                error_code="EARLY_STOPPING_WITHOUT_EVALS"
            )
        self._check_metrics_buffer(metrics, len(watchlist), num_boost_round)

        for dataset, name in watchlist:
            if dataset.num_col() != dtrain.num_col():
                raise DimensionError(
                    f"Watch-list entry '{name}' has {dataset.num_col()} features, training data has {dtrain.num_col()}",
                    error_code="FEATURE_COUNT_MISMATCH",
                    context={'name': name}
                )

        booster, train_params = self._prepare_booster(params, init_model)
        if booster.num_features() is not None and booster.num_features() != dtrain.num_col():
            raise DimensionError(
                f"Model was trained on {booster.num_features()} features, training data has {dtrain.num_col()}",
                error_code="FEATURE_COUNT_MISMATCH",
                context={'expected': booster.num_features(), 'actual': dtrain.num_col()}
            )
        booster.check_params_compatible(train_params)

        active = resolve_metrics(train_params, get_objective(train_params).default_metric, feval)
        if use_early_stopping and not active:
            raise ConfigurationError(
                "Early stopping requires an evaluation metric",
                error_code="EARLY_STOPPING_WITHOUT_METRIC"
            )
        if metrics is not None and watchlist and not active:
            raise ConfigurationError(
                "metrics buffer requires an evaluation metric",
                error_code="METRICS_WITHOUT_METRIC"
            )

        monitor = None
        if use_early_stopping:
            maximize = metric_direction(train_params, active[-1][0])
            monitor = EarlyStoppingMonitor(early_stopping_rounds, maximize)
            logger.info(
                f"Will train until {watchlist[-1][1]} hasn't improved in {early_stopping_rounds} rounds"
            )

        if init_model is not None:
            booster.params = train_params
            logger.info(f"Continuing training from version {booster.version}")

        if evals_result is not None:
            evals_result.clear()
        history = evals_result if evals_result is not None else {}

        round_logger = get_logger(__name__, with_performance=True)
        start = booster.version
        for i in range(num_boost_round):
            iteration = start + i
            round_logger.start_timer("boosting_round")
            booster.update(dtrain, self.grower)
            round_logger.stop_timer("boosting_round", level=logging.DEBUG)

            if not watchlist:
                continue

            results = booster.evaluate(watchlist, feval)
            record_history(history, results)

            if metrics is not None:
                per_entry = len(results) // len(watchlist)
                for w in range(len(watchlist)):
                    metrics[w, i] = results[(w + 1) * per_entry - 1][2]

            if self.verbose_eval and (_should_log(self.verbose_eval, i) or i == num_boost_round - 1):
                round_logger.log_evaluation(iteration, format_eval_line(iteration, results))

            if monitor is not None and monitor.update(iteration, results[-1][2]):
                break

        if monitor is not None and monitor.best_round is not None:
            booster.set_attrs({
                'best_iteration': str(monitor.best_round),
                'best_score': str(monitor.best_score),
            })
        elif monitor is None and booster.version > start:
            # Rounds past an earlier best make its record stale
            booster.set_attrs({'best_iteration': None, 'best_score': None})

        logger.info(f"Finished training at version {booster.version}")
        return booster


def train(
    params: ParamsLike,
    dtrain: Dataset,
    num_boost_round: int = 10,
    evals: Optional[WatchList] = None,
    feval: Any = None,
    early_stopping_rounds: Optional[int] = None,
    evals_result: Optional[Dict[str, Dict[str, List[float]]]] = None,
    metrics: Optional[np.ndarray] = None,
    verbose_eval: Union[bool, int] = True,
    init_model: Optional[Union[Booster, Source]] = None,
    grower: Any = None,
) -> Booster:
    """Train a booster with the given parameters.

    Convenience wrapper around :class:`ModelTrainer`; see
    :meth:`ModelTrainer.train` for the arguments.

    Example:
        >>> booster = train({'objective': 'binary:logistic'}, dtrain, 20,
        ...                 evals=[(dvalid, 'valid')], early_stopping_rounds=3)
        >>> booster.best_iteration
        12
    """
    trainer = ModelTrainer(grower=grower, verbose_eval=verbose_eval)
    return trainer.train(
        params, dtrain,
        num_boost_round=num_boost_round,
        evals=evals,
        feval=feval,
        early_stopping_rounds=early_stopping_rounds,
        evals_result=evals_result,
        metrics=metrics,
        init_model=init_model,
    )


@dataclass
class CVResult:
    """Cross validation results.

    Attributes:
        history: One ``[i]\\ttrain-metric:mean+std\\ttest-metric:mean+std`` line per round
        results: DataFrame with ``{name}-{metric}-mean`` / ``-std`` columns
        boosters: One trained booster per fold
        best_iteration: Best round when early stopping was used
    """
    history: List[str]
    results: pd.DataFrame
    boosters: List[Booster] = field(default_factory=list)
    best_iteration: Optional[int] = None


def _make_folds(
    dtrain: Dataset,
    nfold: int,
    stratified: bool,
    seed: int,
    shuffle: bool,
) -> List[Tuple[np.ndarray, np.ndarray]]:
    random_state = seed if shuffle else None
    rows = np.arange(dtrain.num_row())
    if stratified:
        label = dtrain.get_label()
        splitter = StratifiedKFold(n_splits=nfold, shuffle=shuffle, random_state=random_state)
        return list(splitter.split(rows, label))
    splitter = KFold(n_splits=nfold, shuffle=shuffle, random_state=random_state)
    return list(splitter.split(rows))


def _aggregate(fold_results: Sequence[List[Tuple[str, str, float]]]) -> List[Tuple[str, str, float, float]]:
    aggregated = []
    for position, (name, metric, _) in enumerate(fold_results[0]):
        scores = np.array([results[position][2] for results in fold_results])
        aggregated.append((name, metric, float(scores.mean()), float(scores.std())))
    return aggregated


@timer(name="cv")
def cv(
    params: ParamsLike,
    dtrain: Dataset,
    num_boost_round: int = 10,
    nfold: int = 3,
    stratified: bool = False,
    metrics: Sequence[str] = (),
    feval: Any = None,
    early_stopping_rounds: Optional[int] = None,
    seed: int = 0,
    shuffle: bool = True,
    verbose_eval: Union[bool, int, None] = None,
    grower: Any = None,
) -> CVResult:
    """Cross validate boosting with all folds advancing in lockstep.

    Early stopping uses the mean test score of the active metric; results
    are truncated to the best round.

    Returns:
        CVResult with per-round history, a DataFrame and the fold boosters
    """
    params = params.copy() if isinstance(params, BoosterParams) else BoosterParams(params)
    if metrics:
        params['eval_metric'] = list(metrics)
    params.validate()
    validate_parameter("nfold", nfold, min_value=2)

    if dtrain.get_label() is None:
        raise ConfigurationError("Cross validation requires labels", error_code="MISSING_LABEL")

    folds = []
    for train_idx, test_idx in _make_folds(dtrain, nfold, stratified, seed, shuffle):
        dfold_train = dtrain.slice(train_idx)
        dfold_test = dtrain.slice(test_idx)
        folds.append((Booster(params), dfold_train, dfold_test))

    monitor = None
    if early_stopping_enabled(early_stopping_rounds):
        active = resolve_metrics(params, folds[0][0].objective.default_metric, feval)
        if not active:
            raise ConfigurationError(
                "Early stopping requires an evaluation metric",
                error_code="EARLY_STOPPING_WITHOUT_METRIC"
            )
        monitor = EarlyStoppingMonitor(early_stopping_rounds, metric_direction(params, active[-1][0]))

    history: List[str] = []
    rows: List[Dict[str, float]] = []
    for i in range(num_boost_round):
        fold_results = []
        for booster, dfold_train, dfold_test in folds:
            booster.update(dfold_train, grower)
            fold_results.append(booster.evaluate([(dfold_train, 'train'), (dfold_test, 'test')], feval))

        aggregated = _aggregate(fold_results)
        line = "\t".join(
            [f"[{i}]"] + [f"{name}-{metric}:{mean:g}+{std:g}" for name, metric, mean, std in aggregated]
        )
        history.append(line)
        row = {}
        for name, metric, mean, std in aggregated:
            row[f"{name}-{metric}-mean"] = mean
            row[f"{name}-{metric}-std"] = std
        rows.append(row)

        if _should_log(verbose_eval, i):
            logger.info(line)

        if monitor is not None and monitor.update(i, aggregated[-1][2]):
            break

    best_iteration = None
    if monitor is not None and monitor.best_round is not None:
        best_iteration = monitor.best_round
        history = history[:best_iteration + 1]
        rows = rows[:best_iteration + 1]
        for booster, _, _ in folds:
            booster.set_attrs({
                'best_iteration': str(best_iteration),
                'best_score': str(monitor.best_score),
            })

    return CVResult(
        history=history,
        results=pd.DataFrame(rows),
        boosters=[booster for booster, _, _ in folds],
        best_iteration=best_iteration,
    )
