"""Application runner for folder-size.

The runner owns one measurement run: it acquires the shared native size
query handle, locates the fallback tool once, resolves the input paths and
measures them one at a time, in input order. Failures are path-scoped; the
run always completes with whatever reports could be produced.
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterable
from contextlib import ExitStack, closing
from dataclasses import dataclass, field

from folder_size.core.config import MainConfig, apply_overrides
from folder_size.core.errors import FallbackToolNotFoundError, NativeQueryUnavailableError
from folder_size.core.native import open_native_query
from folder_size.core.paths import resolve_paths
from folder_size.core.robocopy import RobocopyMeasurer
from folder_size.core.strategy import MeasureMode, MeasureState, PathOutcome, SizeStrategySelector
from folder_size.types.models import SizeReport
from folder_size.types.protocols import FallbackMeasurer, NativeSizeQuery
from folder_size.utils.logging import log_with_context, measured_path

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunSummary:
    """Reports and skipped paths of a completed run."""

    reports: list[SizeReport] = field(default_factory=list)
    skipped: list[PathOutcome] = field(default_factory=list)


class ApplicationRunner:
    """Main application runner that coordinates all components."""

    def __init__(self, config: MainConfig) -> None:
        """Initialize the application runner.

        Args:
            config: Validated configuration; conflicting modes have already
                been rejected by validation
        """
        self.config: MainConfig = config

    @property
    def mode(self) -> MeasureMode:
        return self.config.measurement.mode

    def iter_outcomes(self, raw_paths: Iterable[str]) -> Generator[PathOutcome]:
        """Measure every resolved path and yield its outcome.

        The native handle is held for the whole run and released when the
        iteration ends, including when the consumer stops early or an
        exception propagates.

        Args:
            raw_paths: Paths or wildcard patterns

        Yields:
            One terminal outcome per resolved directory, in input order
        """
        measurement = self.config.measurement

        with ExitStack() as stack:
            native = self._acquire_native(stack)
            fallback = self._locate_fallback()

            selector = SizeStrategySelector(
                native=native,
                fallback=fallback,
                mode=self.mode,
                precision=measurement.precision,
                exclude_dirs=measurement.exclude_dirs,
                exclude_files=measurement.exclude_files,
            )

            for path in resolve_paths(raw_paths, literal=measurement.literal_paths):
                with measured_path(path):
                    outcome = selector.measure(path)
                yield outcome

    def iter_reports(self, raw_paths: Iterable[str]) -> Generator[SizeReport]:
        """Yield the size reports of a run, skipping paths without one."""
        with closing(self.iter_outcomes(raw_paths)) as outcomes:
            for outcome in outcomes:
                if outcome.report is not None:
                    yield outcome.report

    def run(self, raw_paths: Iterable[str]) -> RunSummary:
        """Run a complete measurement and collect its results.

        Args:
            raw_paths: Paths or wildcard patterns

        Returns:
            Reports in processing order and the outcomes of skipped paths
        """
        summary = RunSummary()
        for outcome in self.iter_outcomes(raw_paths):
            if outcome.state is MeasureState.SUCCESS and outcome.report is not None:
                summary.reports.append(outcome.report)
            else:
                summary.skipped.append(outcome)

        log_with_context(
            logger,
            logging.INFO,
            "Measurement run complete",
            extra={
                "measured": len(summary.reports),
                "skipped": len(summary.skipped),
                "mode": self.mode.value,
            },
        )
        return summary

    def _acquire_native(self, stack: ExitStack) -> NativeSizeQuery | None:
        """Acquire the shared native handle unless the run is fallback-only."""
        if self.mode is MeasureMode.FALLBACK_ONLY:
            return None

        try:
            return stack.enter_context(open_native_query())
        except NativeQueryUnavailableError as exc:
            logger.warning(
                "Native size query unavailable for this run: %s",
                exc,
                extra={"error": str(exc)},
            )
            return None

    def _locate_fallback(self) -> FallbackMeasurer | None:
        """Locate the fallback tool once per run unless the run is native-only."""
        if self.mode is MeasureMode.NATIVE_ONLY:
            return None

        try:
            return RobocopyMeasurer.locate(
                self.config.robocopy.executable,
                threads=self.config.measurement.threads,
            )
        except FallbackToolNotFoundError as exc:
            logger.warning(
                "%s; paths needing it will be skipped",
                exc,
                extra={"error": str(exc)},
            )
            return None


def get_folder_size(
    paths: str | Iterable[str],
    *,
    precision: int | None = None,
    fallback_only: bool | None = None,
    native_only: bool | None = None,
    threads: int | None = None,
    exclude_dirs: Iterable[str] | None = None,
    exclude_files: Iterable[str] | None = None,
    literal_paths: bool | None = None,
    robocopy: str | None = None,
) -> list[SizeReport]:
    """Measure one or more directory trees.

    Args:
        paths: Path, wildcard pattern, or iterable of them
        precision: Decimal places for derived values (default: 4)
        fallback_only: Always use the fallback strategy
        native_only: Never use the fallback strategy
        threads: Thread count for the fallback tool (default: 16)
        exclude_dirs: Directory exclusions, fallback strategy only
        exclude_files: File exclusions, fallback strategy only
        literal_paths: Disable wildcard expansion
        robocopy: Name or path of the fallback executable

    Returns:
        One report per successfully measured directory, in input order

    Raises:
        ConfigurationError: If the options are invalid or conflicting

    Examples:
        >>> reports = get_folder_size(["/srv/data"], precision=2)
        >>> reports[0].total_mb
        Decimal('12.50')
    """
    config = apply_overrides(
        MainConfig(),
        {
            "measurement": {
                "precision": precision,
                "fallback_only": fallback_only,
                "native_only": native_only,
                "threads": threads,
                "exclude_dirs": list(exclude_dirs) if exclude_dirs is not None else None,
                "exclude_files": list(exclude_files) if exclude_files is not None else None,
                "literal_paths": literal_paths,
            },
            "robocopy": {"executable": robocopy},
        },
    )
    raw_paths = [paths] if isinstance(paths, str) else list(paths)
    return list(ApplicationRunner(config).iter_reports(raw_paths))
