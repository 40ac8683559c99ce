"""Exception hierarchy and error codes for metric computation."""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes attached to failed MetricResult metadata."""

    MISSING_DATA = "MISSING_DATA"
    INVALID_DATA = "INVALID_DATA"
    CALCULATION_FAILED = "CALCULATION_FAILED"
    UNKNOWN_METRIC = "UNKNOWN_METRIC"
    UNKNOWN_VARIABLE = "UNKNOWN_VARIABLE"
    DEPENDENCY_ERROR = "DEPENDENCY_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class MetricsError(Exception):
    """Base exception for metric computation errors."""

    code = ErrorCode.CALCULATION_FAILED


class MissingDataError(MetricsError):
    """Raised when a required series or value is absent."""

    code = ErrorCode.MISSING_DATA


class InvalidDataError(MetricsError):
    """Raised when a series or raw record has the wrong shape."""

    code = ErrorCode.INVALID_DATA


class CalculationFailedError(MetricsError):
    """Raised on numerical failure, e.g. a non-convergent IRR."""

    code = ErrorCode.CALCULATION_FAILED


class UnknownMetricError(MetricsError, KeyError):
    """Raised when a metric id is not in the registry."""

    code = ErrorCode.UNKNOWN_METRIC

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class UnknownVariableError(MetricsError, KeyError):
    """Raised when a sensitivity variable id is not known."""

    code = ErrorCode.UNKNOWN_VARIABLE

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class DependencyError(MetricsError):
    """
    Raised for cyclic or unresolved dependencies.

    Args:
        message: Human-readable description.
        ids: Offending metric or source ids.
    """

    code = ErrorCode.DEPENDENCY_ERROR

    def __init__(self, message: str, ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.ids = list(ids or [])


class ValidationError(MetricsError, ValueError):
    """Raised when configuration or input violates its contract."""

    code = ErrorCode.VALIDATION_ERROR


class RegistryBuildResult:
    """
    Outcome of building a registry from configuration.

    Args:
        registry: The built registry, or None when a fatal error occurred.
        errors: Configuration errors found during the build.
    """

    def __init__(
        self,
        registry: object | None,
        errors: list[MetricsError] | None = None,
    ) -> None:
        self.registry = registry
        self.errors = list(errors or [])

    @property
    def is_valid(self) -> bool:
        return self.registry is not None and not self.errors

    def unwrap(self):
        """
        Return the registry, raising the first error if the build failed.

        Raises:
            MetricsError: The first recorded configuration error.
        """
        if self.errors:
            raise self.errors[0]
        if self.registry is None:
            raise ValidationError("Registry build produced no registry")
        return self.registry

    def __repr__(self) -> str:
        messages = [str(error) for error in self.errors]
        return f"RegistryBuildResult(valid={self.is_valid}, errors={messages})"
