"""Dictionary-backed scenario data accessors."""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from windfarm_metrics.interfaces.data_accessor import DataAccessorInterface

logger = logging.getLogger(__name__)


class DictDataAccessor(DataAccessorInterface):
    """
    Reads values from a nested dict/list document.

    Integer-like path segments index into lists.

    Args:
        document: Nested scenario document.
    """

    def __init__(self, document: Mapping[str, Any] | None = None) -> None:
        self.document = document or {}

    def get_value_by_path(self, path: Sequence[str], default: Any = None) -> Any:
        node: Any = self.document
        for key in path:
            if isinstance(node, Mapping):
                if key not in node:
                    return default
                node = node[key]
            elif isinstance(node, (list, tuple)):
                try:
                    node = node[int(key)]
                except (ValueError, IndexError, TypeError):
                    return default
            else:
                return default
        return default if node is None else node


class CallableDataAccessor(DataAccessorInterface):
    """
    Adapts a plain ``get_value_by_path(path, default)`` function.

    Exceptions from the wrapped function are logged and mapped to ``default``
    so that the accessor contract of never raising holds.

    Args:
        func: Callable taking ``(path, default)`` or just ``(path)``.
    """

    def __init__(self, func: Callable[..., Any]) -> None:
        self.func = func

    def get_value_by_path(self, path: Sequence[str], default: Any = None) -> Any:
        try:
            try:
                value = self.func(list(path), default)
            except TypeError:
                value = self.func(list(path))
        except Exception as exc:
            logger.warning("Accessor failed for path %s: %s", "/".join(map(str, path)), exc)
            return default
        return default if value is None else value


def as_accessor(
    source: DataAccessorInterface | Mapping[str, Any] | Callable[..., Any],
) -> DataAccessorInterface:
    """
    Normalise an accessor argument.

    Args:
        source: An accessor, a nested dict, or a ``get_value_by_path`` callable.

    Returns:
        DataAccessorInterface instance.
    """
    if isinstance(source, DataAccessorInterface):
        return source
    if isinstance(source, Mapping):
        return DictDataAccessor(source)
    if callable(source):
        return CallableDataAccessor(source)
    raise TypeError(f"Unsupported data accessor type: {type(source).__name__}")
