"""Size strategy selection for a single measured path.

Each path goes through a small state machine:

    NOT_STARTED -> NATIVE_ATTEMPTED -> SUCCESS | FALLBACK_ATTEMPTED | SKIPPED
    NOT_STARTED -> FALLBACK_ATTEMPTED                   (fallback-only mode)
    FALLBACK_ATTEMPTED -> SUCCESS | SKIPPED

The native query is tried first. Access denied and empty/unknown results
escalate to the fallback tool unless native-only mode was requested; any
other native failure is reported and the path is skipped. A path is never
attempted twice and nothing is retried.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Final

from folder_size.core.errors import (
    FallbackError,
    NativeQueryError,
    NativeQueryPermissionError,
)
from folder_size.core.normalizer import DEFAULT_PRECISION, build_report
from folder_size.types.models import NativeMeasurement, SizeReport
from folder_size.types.protocols import FallbackMeasurer, NativeSizeQuery

logger = logging.getLogger(__name__)


class MeasureMode(str, Enum):
    """Which strategies may be used for a run."""

    AUTO = "auto"
    FALLBACK_ONLY = "fallback_only"
    NATIVE_ONLY = "native_only"


class MeasureState(Enum):
    """States of a single path measurement."""

    NOT_STARTED = auto()
    NATIVE_ATTEMPTED = auto()
    FALLBACK_ATTEMPTED = auto()
    SUCCESS = auto()
    SKIPPED = auto()


TERMINAL_STATES: Final[frozenset[MeasureState]] = frozenset({MeasureState.SUCCESS, MeasureState.SKIPPED})

_ALLOWED_TRANSITIONS: Final[dict[MeasureState, frozenset[MeasureState]]] = {
    MeasureState.NOT_STARTED: frozenset({MeasureState.NATIVE_ATTEMPTED, MeasureState.FALLBACK_ATTEMPTED}),
    MeasureState.NATIVE_ATTEMPTED: frozenset(
        {MeasureState.SUCCESS, MeasureState.FALLBACK_ATTEMPTED, MeasureState.SKIPPED}
    ),
    MeasureState.FALLBACK_ATTEMPTED: frozenset({MeasureState.SUCCESS, MeasureState.SKIPPED}),
    MeasureState.SUCCESS: frozenset(),
    MeasureState.SKIPPED: frozenset(),
}


class StateTransitionError(Exception):
    """Exception raised when a measurement state transition is not allowed."""

    def __init__(self, from_state: MeasureState, to_state: MeasureState) -> None:
        super().__init__(f"Invalid transition {from_state.name} -> {to_state.name}")
        self.from_state: MeasureState = from_state
        self.to_state: MeasureState = to_state


@dataclass(slots=True)
class PathOutcome:
    """Outcome of measuring one path.

    Holds exactly one of a report (SUCCESS) or, for SKIPPED, an optional
    warning message. The warning is None only when the path was skipped
    because of a run-wide condition that has already been reported.
    """

    path: Path
    state: MeasureState = MeasureState.NOT_STARTED
    report: SizeReport | None = None
    warning: str | None = None
    history: list[MeasureState] = field(default_factory=lambda: [MeasureState.NOT_STARTED])

    def transition(self, state: MeasureState) -> None:
        """Move to state, enforcing the allowed transitions.

        Raises:
            StateTransitionError: If the transition is not allowed
        """
        if state not in _ALLOWED_TRANSITIONS[self.state]:
            raise StateTransitionError(self.state, state)
        self.state = state
        self.history.append(state)

    def succeed(self, report: SizeReport) -> "PathOutcome":
        self.transition(MeasureState.SUCCESS)
        self.report = report
        return self

    def skip(self, warning: str | None) -> "PathOutcome":
        self.transition(MeasureState.SKIPPED)
        self.warning = warning
        if warning is not None:
            logger.warning(warning, extra={"path": str(self.path)})
        return self

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class SizeStrategySelector:
    """Choose and run the sizing strategy for each path of a run.

    The selector holds the run-wide collaborators: the shared native handle
    (None when the platform facility could not be acquired) and the
    fallback measurer (None when the fallback tool could not be located).
    """

    def __init__(
        self,
        *,
        native: NativeSizeQuery | None,
        fallback: FallbackMeasurer | None,
        mode: MeasureMode = MeasureMode.AUTO,
        precision: int = DEFAULT_PRECISION,
        exclude_dirs: Sequence[str] = (),
        exclude_files: Sequence[str] = (),
    ) -> None:
        """Initialize the selector.

        Args:
            native: Shared native size query handle, or None if unavailable
            fallback: Fallback measurer, or None if the tool is missing
            mode: Strategy mode for the run
            precision: Decimal places for derived values (0 to 10)
            exclude_dirs: Directory exclusions, honored by the fallback only
            exclude_files: File exclusions, honored by the fallback only
        """
        self.native: NativeSizeQuery | None = native
        self.fallback: FallbackMeasurer | None = fallback
        self.mode: MeasureMode = mode
        self.precision: int = precision
        self.exclude_dirs: tuple[str, ...] = tuple(exclude_dirs)
        self.exclude_files: tuple[str, ...] = tuple(exclude_files)

    @property
    def fallback_permitted(self) -> bool:
        return self.mode is not MeasureMode.NATIVE_ONLY

    def measure(self, path: Path) -> PathOutcome:
        """Measure one validated directory path.

        Args:
            path: Resolved absolute path of an existing directory

        Returns:
            Terminal outcome holding a report or the reason it was skipped
        """
        outcome = PathOutcome(path=path)

        if self.mode is MeasureMode.FALLBACK_ONLY:
            return self._run_fallback(outcome)

        outcome.transition(MeasureState.NATIVE_ATTEMPTED)

        if self.native is None:
            return self._escalate(outcome, "Native size query is unavailable")

        started_at = datetime.now()
        try:
            size = self.native.folder_size(path)
        except NativeQueryPermissionError as exc:
            return self._escalate(outcome, f"Access denied for native size query: {exc}")
        except NativeQueryError as exc:
            return outcome.skip(f"Native size query failed for {path}: {exc}")
        ended_at = datetime.now()

        if size is None:
            return self._escalate(outcome, "Native size query returned an empty size")

        measurement = NativeMeasurement(total_bytes=size, started_at=started_at, ended_at=ended_at)
        logger.debug("Measured with native size query", extra={"path": str(path), "total_bytes": size})
        return outcome.succeed(build_report(path, measurement, precision=self.precision))

    def _escalate(self, outcome: PathOutcome, reason: str) -> PathOutcome:
        """Switch a path to the fallback strategy, or skip it in native-only mode."""
        if not self.fallback_permitted:
            return outcome.skip(f"{reason} for {outcome.path}; fallback disabled by native-only mode")

        logger.info(
            "Switching to fallback strategy for %s: %s",
            outcome.path,
            reason,
            extra={"path": str(outcome.path), "reason": reason},
        )
        return self._run_fallback(outcome)

    def _run_fallback(self, outcome: PathOutcome) -> PathOutcome:
        outcome.transition(MeasureState.FALLBACK_ATTEMPTED)

        if self.fallback is None:
            # Missing tool was reported once for the whole run
            logger.debug("Fallback tool unavailable, skipping", extra={"path": str(outcome.path)})
            return outcome.skip(None)

        try:
            measurement = self.fallback.measure(
                outcome.path,
                exclude_dirs=self.exclude_dirs,
                exclude_files=self.exclude_files,
            )
        except FallbackError as exc:
            return outcome.skip(f"Fallback strategy failed for {outcome.path}: {exc}")

        logger.debug(
            "Measured with fallback strategy",
            extra={"path": str(outcome.path), "total_bytes": measurement.counters.total_bytes},
        )
        return outcome.succeed(build_report(outcome.path, measurement, precision=self.precision))
