"""Abstract interfaces for external dependencies."""

from windfarm_metrics.interfaces.data_accessor import DataAccessorInterface

__all__ = ["DataAccessorInterface"]
