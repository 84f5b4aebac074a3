"""Plugin registry for extensibility.

This module provides a thread-safe singleton registry for objectives,
evaluation metrics and grow operations.

Example:
    >>> from tree_ensemble.models.registry import plugin_registry
    >>> plugin_registry.register_metric('custom', MyMetric)
"""

from .plugin_registry import PluginRegistry, plugin_registry

__all__ = [
    'PluginRegistry',
    'plugin_registry'
]
