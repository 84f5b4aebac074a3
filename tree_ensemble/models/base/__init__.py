"""Interfaces for tree_ensemble extension points.

Components:
- EvaluationProtocol: custom evaluation function interface
- GrowerProtocol: grow operation interface (one tree per round)

Example:
    >>> from tree_ensemble.models.base import EvaluationProtocol
    >>> isinstance(my_metric, EvaluationProtocol)
    True
"""

from .protocols import EvaluationProtocol, GrowerProtocol, is_maximize_metric

__all__ = [
    'EvaluationProtocol',
    'GrowerProtocol',
    'is_maximize_metric'
]
