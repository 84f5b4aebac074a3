"""Standardized error handling with structured context.

Wraps package operations so failures are logged once with an
``ErrorContext`` and surface to the caller as package exceptions.
Exceptions that already belong to the package hierarchy pass through
unchanged, so a ``DimensionError`` raised deep inside a round still
reaches the caller as a ``DimensionError``.
"""

from contextlib import contextmanager
from typing import Any, Dict, Optional, Type
import sys
from dataclasses import dataclass, field
from datetime import datetime

from .logger import get_logger
from .exceptions import (
    TreeEnsembleError,
    ModelTrainingError,
    ModelEvaluationError,
    ConfigurationError,
    FileOperationError,
    create_error_context,
)

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Structured error context information."""
    operation: str
    component: str
    timestamp: datetime = field(default_factory=datetime.now)
    user_data: Optional[Dict[str, Any]] = None
    system_info: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if self.system_info is None:
            self.system_info = {
                'python_version': sys.version_info[:3],
                'platform': sys.platform
            }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'operation': self.operation,
            'component': self.component,
            'timestamp': self.timestamp.isoformat(),
            'user_data': create_error_context(**(self.user_data or {})),
            'system_info': self.system_info or {},
        }


class ErrorHandler:
    """Centralized error handling for one component.

    Example:
        >>> handler = ErrorHandler('Booster')
        >>> with handler.operation_context('grow_tree', {'round': 3}):
        ...     tree = grower.grow(booster, dtrain, params)
    """

    def __init__(self, component_name: str) -> None:
        self.component_name = component_name
        self.logger = get_logger(f"{__name__}.{component_name}")

    @contextmanager
    def operation_context(
        self,
        operation_name: str,
        user_data: Optional[Dict[str, Any]] = None,
        reraise_as: Optional[Type[TreeEnsembleError]] = None
    ):
        """Context manager for standardized operation error handling.

        Args:
            operation_name: Name of the operation being performed
            user_data: Additional context data
            reraise_as: Package exception type used for foreign exceptions

        Yields:
            The ErrorContext describing this operation
        """
        context = ErrorContext(
            operation=operation_name,
            component=self.component_name,
            user_data=user_data,
        )

        self.logger.debug(f"Starting operation: {operation_name}")

        try:
            yield context
        except TreeEnsembleError as e:
            self._log_error(e, context)
            raise
        except Exception as e:
            self._log_error(e, context)
            exception_class = reraise_as or self._determine_exception_type(operation_name)
            raise exception_class(
                f"{context.operation} failed in {context.component}: {e}",
                error_code=f"{operation_name.upper()}_FAILED",
                context={
                    **context.to_dict(),
                    'original_error_type': type(e).__name__,
                },
            ) from e

        self.logger.debug(f"Completed operation: {operation_name}")

    def _log_error(self, exception: Exception, context: ErrorContext) -> None:
        self.logger.error(
            f"Operation '{context.operation}' failed in {context.component}: "
            f"{type(exception).__name__}: {exception}",
            extra={'context': context.to_dict()}
        )

    def _determine_exception_type(self, operation_name: str) -> Type[TreeEnsembleError]:
        """Map an operation name to the package exception that reports it."""
        lowered = operation_name.lower()
        if 'train' in lowered or 'grow' in lowered or 'boost' in lowered:
            return ModelTrainingError
        if 'evaluat' in lowered or 'predict' in lowered:
            return ModelEvaluationError
        if 'save' in lowered or 'load' in lowered:
            return FileOperationError
        if 'config' in lowered or 'validat' in lowered:
            return ConfigurationError
        return TreeEnsembleError


def model_operation_context(
    operation_name: str,
    component_name: str = "ModelOperation",
    **kwargs: Any
):
    """Context manager for model operations.

    Example:
        >>> with model_operation_context('grow_tree', component_name='Booster'):
        ...     tree = grower.grow(booster, dtrain, params)
    """
    handler = ErrorHandler(component_name)
    return handler.operation_context(operation_name, **kwargs)
