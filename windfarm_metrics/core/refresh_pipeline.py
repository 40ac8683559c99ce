"""Staged refresh state machine for recomputing scenario results."""

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from windfarm_metrics.core.errors import ValidationError

logger = logging.getLogger(__name__)


class RefreshStage(str, Enum):
    IDLE = "idle"
    DISTRIBUTIONS = "distributions"
    CONSTRUCTION = "construction"
    METRICS = "metrics"
    TRANSFORM = "transform"
    SENSITIVITY = "sensitivity"
    COMPLETE = "complete"
    ERROR = "error"


RUNNING_STAGES = (
    RefreshStage.DISTRIBUTIONS,
    RefreshStage.CONSTRUCTION,
    RefreshStage.METRICS,
    RefreshStage.TRANSFORM,
    RefreshStage.SENSITIVITY,
)

StageCheck = Callable[[], bool]
StageHandler = Callable[[], Any]


class RefreshStateMachine:
    """
    Forward-only refresh pipeline.

    ``idle -> distributions -> construction -> metrics -> transform ->
    sensitivity -> complete``, with ``error`` reachable from any running
    stage. A stage is left only when its completion check passes; a finished
    machine (``complete`` or ``error``) returns to ``idle`` through ``reset``.

    Args:
        checks: Optional completion check per running stage. Stages without a
            check complete as soon as they are advanced.

    Example:
        >>> machine = RefreshStateMachine()
        >>> machine.run({RefreshStage.METRICS: compute_metrics})
        <RefreshStage.COMPLETE: 'complete'>
    """

    def __init__(self, checks: Mapping[RefreshStage, StageCheck] | None = None) -> None:
        self.checks = dict(checks or {})
        self.state = RefreshStage.IDLE
        self.error: str | None = None
        self.failed_stage: RefreshStage | None = None
        self.results: dict[RefreshStage, Any] = {}
        self.history: list[RefreshStage] = [RefreshStage.IDLE]

    @property
    def is_running(self) -> bool:
        return self.state in RUNNING_STAGES

    @property
    def is_finished(self) -> bool:
        return self.state in (RefreshStage.COMPLETE, RefreshStage.ERROR)

    def _move(self, stage: RefreshStage) -> None:
        logger.debug("Refresh stage %s -> %s", self.state.value, stage.value)
        self.state = stage
        self.history.append(stage)

    def start(self) -> RefreshStage:
        """
        Enter the first running stage.

        Raises:
            ValidationError: If the machine is not idle.
        """
        if self.state is not RefreshStage.IDLE:
            raise ValidationError(f"Cannot start refresh from '{self.state.value}'")
        self.error = None
        self.failed_stage = None
        self.results = {}
        self._move(RUNNING_STAGES[0])
        return self.state

    def advance(self) -> bool:
        """
        Leave the current stage if its completion check passes.

        Returns:
            True if the machine moved forward, False if the check failed.

        Raises:
            ValidationError: If the machine is not running.
        """
        if not self.is_running:
            raise ValidationError(f"Cannot advance refresh from '{self.state.value}'")

        check = self.checks.get(self.state)
        if check is not None and not check():
            logger.debug("Refresh stage %s not complete yet", self.state.value)
            return False

        index = RUNNING_STAGES.index(self.state)
        if index + 1 < len(RUNNING_STAGES):
            self._move(RUNNING_STAGES[index + 1])
        else:
            self._move(RefreshStage.COMPLETE)
        return True

    def fail(self, message: str) -> RefreshStage:
        """
        Move a running machine to ``error``.

        Raises:
            ValidationError: If the machine is not running.
        """
        if not self.is_running:
            raise ValidationError(f"Cannot fail refresh from '{self.state.value}'")
        logger.warning("Refresh failed at %s stage: %s", self.state.value, message)
        self.failed_stage = self.state
        self.error = message
        self._move(RefreshStage.ERROR)
        return self.state

    def reset(self) -> RefreshStage:
        """
        Return a finished or idle machine to ``idle``.

        Raises:
            ValidationError: If a refresh is still running.
        """
        if self.is_running:
            raise ValidationError(f"Cannot reset refresh during '{self.state.value}'")
        if self.state is not RefreshStage.IDLE:
            self._move(RefreshStage.IDLE)
        return self.state

    def run(self, handlers: Mapping[RefreshStage, StageHandler] | None = None) -> RefreshStage:
        """
        Drive a full refresh, calling each stage's handler before its check.

        Handler return values are kept in ``results``. A handler exception or
        a failed completion check ends the run in ``error``.

        Args:
            handlers: Optional work per running stage.

        Returns:
            Final stage, ``complete`` or ``error``.
        """
        handlers = handlers or {}
        self.start()
        while self.is_running:
            stage = self.state
            handler = handlers.get(stage)
            try:
                if handler is not None:
                    self.results[stage] = handler()
                moved = self.advance()
            except Exception as exc:
                self.fail(f"{type(exc).__name__}: {exc}")
                break
            if not moved:
                self.fail(f"Stage '{stage.value}' did not complete")
        return self.state
