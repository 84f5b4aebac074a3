# tree_ensemble/models/attributes.py
"""String key/value attributes stored with a model."""

from threading import RLock
from typing import Dict, List, Mapping, Optional

from ..utils.exceptions import ConfigurationError


def _check_key(key) -> None:
    if not isinstance(key, str):
        raise ConfigurationError(
            f"Attribute keys must be strings, got {type(key).__name__}",
            error_code="ATTR_KEY_NOT_STRING",
            context={'key': repr(key)}
        )


def _check_value(key: str, value) -> None:
    if value is not None and not isinstance(value, str):
        raise ConfigurationError(
            f"Attribute '{key}' must be a string or None, got {type(value).__name__}",
            error_code="ATTR_VALUE_NOT_STRING",
            context={'key': key}
        )


class AttributeStore:
    """Thread-safe string to string mapping.

    Setting a key to ``None`` removes it. ``set_attrs`` validates every
    entry before applying any, and readers never see a partial merge.
    """

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._lock = RLock()
        self._attrs: Dict[str, str] = {}
        if initial:
            self.set_attrs(initial)

    def set_attr(self, key: str, value: Optional[str]) -> None:
        _check_key(key)
        _check_value(key, value)
        with self._lock:
            if value is None:
                self._attrs.pop(key, None)
            else:
                self._attrs[key] = value

    def set_attrs(self, attrs: Mapping[str, Optional[str]]) -> None:
        items = list(attrs.items())
        for key, value in items:
            _check_key(key)
            _check_value(key, value)
        with self._lock:
            for key, value in items:
                if value is None:
                    self._attrs.pop(key, None)
                else:
                    self._attrs[key] = value

    def get_attr(self, key: str) -> Optional[str]:
        _check_key(key)
        with self._lock:
            return self._attrs.get(key)

    def get_attrs(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._attrs)

    def attr_names(self) -> List[str]:
        with self._lock:
            return list(self._attrs)

    def clear(self) -> None:
        with self._lock:
            self._attrs.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._attrs)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._attrs

    def __repr__(self) -> str:
        return f"AttributeStore({self.get_attrs()!r})"
