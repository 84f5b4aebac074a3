"""Tree Ensemble - Utility Components.

Shared utilities: logging, timing, the exception hierarchy and
standardized error context.

Example:
    >>> from tree_ensemble.utils import get_logger, timer
    >>> from tree_ensemble.utils.error_handling import model_operation_context
    >>> logger = get_logger(__name__)
"""

from .logger import (
    get_logger,
    configure_logging,
    set_log_level
)
from .timer import (
    timer,
    timed_operation,
    get_performance_stats,
    reset_performance_stats
)
from .exceptions import (
    TreeEnsembleError,
    ConfigurationError,
    DataValidationError,
    DimensionError,
    ModelTrainingError,
    ModelEvaluationError,
    ExplainabilityError,
    FeatureIndexError,
    FileOperationError,
    FormatError,
    ModelIOError,
    PerformanceError,
    handle_and_reraise
)
from .error_handling import (
    ErrorContext,
    ErrorHandler,
    model_operation_context
)

__all__ = [
    # Logging utilities
    'get_logger',
    'configure_logging',
    'set_log_level',

    # Timing utilities
    'timer',
    'timed_operation',
    'get_performance_stats',
    'reset_performance_stats',

    # Exception handling
    'TreeEnsembleError',
    'ConfigurationError',
    'DataValidationError',
    'DimensionError',
    'ModelTrainingError',
    'ModelEvaluationError',
    'ExplainabilityError',
    'FeatureIndexError',
    'FileOperationError',
    'FormatError',
    'ModelIOError',
    'PerformanceError',
    'handle_and_reraise',

    # Error context
    'ErrorContext',
    'ErrorHandler',
    'model_operation_context'
]
