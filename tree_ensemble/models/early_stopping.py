# tree_ensemble/models/early_stopping.py
"""Early-stopping policy."""

from typing import Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)


def should_early_stop(patience: int, current_round: int, best_round: int) -> bool:
    """Return True once ``patience`` rounds passed without improvement.

    Args:
        patience: Rounds allowed without improvement
        current_round: Index of the round just evaluated
        best_round: Index of the best round so far

    Returns:
        ``current_round - best_round >= patience``
    """
    return current_round - best_round >= patience


def early_stopping_enabled(patience: Optional[int]) -> bool:
    return patience is not None and patience > 0


class EarlyStoppingMonitor:
    """Track the best score of one metric across rounds.

    Ties keep the earliest round.

    Args:
        patience: Rounds allowed without improvement
        maximize: Whether higher scores are better

    Example:
        >>> monitor = EarlyStoppingMonitor(patience=2, maximize=False)
        >>> for round_index, score in enumerate([0.5, 0.4, 0.45, 0.41]):
        ...     if monitor.update(round_index, score):
        ...         break
        >>> monitor.best_round
        1
    """

    def __init__(self, patience: int, maximize: bool = False) -> None:
        self.patience = patience
        self.maximize = maximize
        self.best_score: Optional[float] = None
        self.best_round: Optional[int] = None
        self.stopped_round: Optional[int] = None

    def is_improvement(self, score: float) -> bool:
        if self.best_score is None:
            return True
        if self.maximize:
            return score > self.best_score
        return score < self.best_score

    def update(self, current_round: int, score: float) -> bool:
        """Record a score and return whether training should stop."""
        if self.is_improvement(score):
            self.best_score = score
            self.best_round = current_round

        if should_early_stop(self.patience, current_round, self.best_round):
            self.stopped_round = current_round
            logger.info(
                f"Stopping. Best iteration: [{self.best_round}] score {self.best_score:g}"
            )
            return True
        return False
