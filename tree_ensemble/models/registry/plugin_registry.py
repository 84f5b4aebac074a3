"""Thread-safe singleton plugin registry for extensibility.

Objectives, evaluation metrics and grow operations are looked up by
name through this registry. Built-ins are registered lazily on first
lookup; users can add or override entries at any time.
"""

from typing import Dict, List
from threading import Lock
from ...utils.exceptions import ConfigurationError
from ...utils.logger import get_logger

logger = get_logger(__name__)


class PluginRegistry:
    """Thread-safe singleton registry for objectives, metrics and growers.

    The singleton pattern ensures there's only one registry instance
    across the entire application.
    """

    _instance = None
    _lock = Lock()
    _builtins_lock = Lock()

    def __new__(cls) -> 'PluginRegistry':
        """Ensure singleton pattern with thread safety."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        """Initialize registry if not already done."""
        if hasattr(self, '_initialized') and self._initialized:
            return

        self._objectives: Dict[str, type] = {}
        self._metrics: Dict[str, type] = {}
        self._growers: Dict[str, type] = {}
        self._builtins_loaded = False
        self._initialized = True

        logger.debug("Initialized PluginRegistry")

    def _ensure_builtins(self) -> None:
        if self._builtins_loaded:
            return
        # Import here to avoid circular imports
        from ..objectives import register_builtin_objectives
        from ..evaluation import register_builtin_metrics
        from ..grower import register_builtin_growers

        with self._builtins_lock:
            if self._builtins_loaded:
                return
            register_builtin_objectives(self)
            register_builtin_metrics(self)
            register_builtin_growers(self)
            self._builtins_loaded = True

    def register_objective(self, name: str, objective_class: type) -> None:
        """Register an objective class.

        Args:
            name: Objective name used in the ``objective`` parameter
            objective_class: Class derived from ``Objective``

        Raises:
            ConfigurationError: If the class does not derive from Objective
        """
        # Import here to avoid circular imports
        from ..objectives import Objective

        if not (isinstance(objective_class, type) and issubclass(objective_class, Objective)):
            raise ConfigurationError(
                "Objective class must inherit from Objective",
                error_code="BAD_PLUGIN_CLASS",
                context={'name': name}
            )

        with self._lock:
            if name in self._objectives:
                logger.debug(f"Overriding existing objective: {name}")
            self._objectives[name] = objective_class

    def register_metric(self, name: str, metric_class: type) -> None:
        """Register an evaluation metric class.

        Args:
            name: Metric name used in the ``eval_metric`` parameter
            metric_class: Class whose instances satisfy EvaluationProtocol

        Example:
            >>> plugin_registry.register_metric('my_metric', MyMetric)
        """
        if not isinstance(metric_class, type):
            raise ConfigurationError(
                "Metric must be registered as a class",
                error_code="BAD_PLUGIN_CLASS",
                context={'name': name}
            )

        with self._lock:
            if name in self._metrics:
                logger.debug(f"Overriding existing metric: {name}")
            self._metrics[name] = metric_class

    def register_grower(self, name: str, grower_class: type) -> None:
        """Register a grow operation under a ``tree_method`` name."""
        if not (isinstance(grower_class, type) and callable(getattr(grower_class, 'grow', None))):
            raise ConfigurationError(
                "Grower class must define a grow() method",
                error_code="BAD_PLUGIN_CLASS",
                context={'name': name}
            )

        with self._lock:
            if name in self._growers:
                logger.debug(f"Overriding existing grower: {name}")
            self._growers[name] = grower_class

    def get_objective_class(self, name: str) -> type:
        """Get registered objective class by name.

        Raises:
            ConfigurationError: If the objective is not registered
        """
        self._ensure_builtins()
        if name not in self._objectives:
            raise ConfigurationError(
                f"Objective '{name}' not registered. Available: {self.get_available_objectives()}",
                error_code="UNKNOWN_OBJECTIVE"
            )
        return self._objectives[name]

    def get_metric_class(self, name: str) -> type:
        """Get registered metric class by name."""
        self._ensure_builtins()
        if name not in self._metrics:
            raise ConfigurationError(
                f"Metric '{name}' not registered. Available: {self.get_available_metrics()}",
                error_code="UNKNOWN_METRIC"
            )
        return self._metrics[name]

    def get_grower_class(self, name: str) -> type:
        """Get registered grower class by tree method name."""
        self._ensure_builtins()
        if name not in self._growers:
            raise ConfigurationError(
                f"Tree method '{name}' not registered. Available: {self.get_available_growers()}",
                error_code="UNKNOWN_TREE_METHOD"
            )
        return self._growers[name]

    def get_available_objectives(self) -> List[str]:
        self._ensure_builtins()
        return list(self._objectives.keys())

    def get_available_metrics(self) -> List[str]:
        self._ensure_builtins()
        return list(self._metrics.keys())

    def get_available_growers(self) -> List[str]:
        self._ensure_builtins()
        return list(self._growers.keys())

    def clear_registry(self) -> None:
        """Clear all registered components (mainly for testing).

        Built-ins are registered again on the next lookup.
        """
        with self._lock:
            self._objectives.clear()
            self._metrics.clear()
            self._growers.clear()
            self._builtins_loaded = False

        logger.info("Cleared plugin registry")

    def __repr__(self) -> str:
        """String representation of the registry."""
        return (
            f"PluginRegistry("
            f"objectives={len(self._objectives)}, "
            f"metrics={len(self._metrics)}, "
            f"growers={len(self._growers)})"
        )


# Global registry instance
plugin_registry = PluginRegistry()
