"""Abstract interface for scenario data access."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


class DataAccessorInterface(ABC):
    """
    Abstract interface for reading raw scenario data by path.

    The accessor is NOT part of the metrics core: scenario storage is owned
    by the caller and passed via dependency injection. Implementations must
    return ``default`` for missing paths and never raise.

    Example:
        >>> class ScenarioStoreAccessor(DataAccessorInterface):
        ...     def __init__(self, store, scenario_id):
        ...         self.store = store
        ...         self.scenario_id = scenario_id
        ...
        ...     def get_value_by_path(self, path, default=None):
        ...         document = self.store.load(self.scenario_id) or {}
        ...         for key in path:
        ...             if not isinstance(document, dict) or key not in document:
        ...                 return default
        ...             document = document[key]
        ...         return document
    """

    @abstractmethod
    def get_value_by_path(self, path: Sequence[str], default: Any = None) -> Any:
        """
        Read the value stored at ``path``.

        Args:
            path: Sequence of keys, e.g. ``["settings", "general", "projectLife"]``.
            default: Value returned when the path is absent.

        Returns:
            Stored value or ``default``.
        """
        pass

    def __call__(self, path: Sequence[str], default: Any = None) -> Any:
        return self.get_value_by_path(path, default)
