"""BatchAnalyzer: run the square analysis over every recording of an experiment."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from glycopaint.analysis.calculator import SquareAnalyzer
from glycopaint.analysis.metrics import SummaryMetricRegistry
from glycopaint.core.config import AnalysisConfig, ImageGeometry
from glycopaint.core.models import Recording, RecordingAnalysis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Result of a batch analysis run.

    Attributes:
        analyses: Completed analyses, in input order.
        recordings_processed: Number of recordings analysed successfully.
        recordings_skipped: Number of recordings flagged for exclusion.
        recordings_failed: Number of recordings whose analysis raised.
        elapsed_seconds: Wall-clock time in seconds.
        warnings: List of warning messages.
    """

    analyses: list[RecordingAnalysis]
    recordings_processed: int
    recordings_skipped: int
    recordings_failed: int
    elapsed_seconds: float
    warnings: list[str] = field(default_factory=list)


class BatchAnalyzer:
    """Analyse a set of recordings one after the other.

    Recordings are independent, so a failure in one is logged and recorded
    as a warning while the others continue.

    Args:
        config: Analysis parameters shared by all recordings.
        geometry: Field of view and recording duration.
        summaries: Optional SummaryMetricRegistry. If None, uses the built-ins.
    """

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        geometry: ImageGeometry | None = None,
        summaries: SummaryMetricRegistry | None = None,
    ) -> None:
        self._analyzer = SquareAnalyzer(config, geometry, summaries)

    @property
    def config(self) -> AnalysisConfig:
        return self._analyzer.config

    def analyze_experiment(
        self,
        recordings: Sequence[Recording],
        progress_callback: Callable[[int, int, str], None] | None = None,
    ) -> BatchResult:
        """Analyse all recordings that are not flagged for exclusion.

        Args:
            recordings: Recordings to analyse.
            progress_callback: Optional callback(current, total, recording_name).

        Returns:
            BatchResult with the analyses and run statistics.

        Raises:
            ValueError: If no recordings are given.
        """
        if not recordings:
            raise ValueError("No recordings to analyse")

        start = time.monotonic()
        warnings: list[str] = []
        analyses: list[RecordingAnalysis] = []
        skipped = 0
        failed = 0
        total = len(recordings)

        for i, recording in enumerate(recordings):
            if recording.exclude:
                skipped += 1
                warnings.append(f"{recording.name}: excluded, not analysed")
            else:
                try:
                    analysis = self._analyzer.analyze(recording)
                    analyses.append(analysis)
                    warnings.extend(analysis.warnings)
                    if not analysis.selected_squares:
                        warnings.append(f"{recording.name}: no squares selected")
                except Exception as exc:
                    if isinstance(exc, (MemoryError, KeyboardInterrupt, SystemExit)):
                        raise
                    logger.warning(
                        "Analysis failed for recording %s: %s",
                        recording.name, exc, exc_info=True,
                    )
                    warnings.append(f"{recording.name}: analysis failed: {exc}")
                    failed += 1

            if progress_callback:
                progress_callback(i + 1, total, recording.name)

        elapsed = time.monotonic() - start
        logger.info(
            "Analysed %d of %d recordings in %.1f s", len(analyses), total, elapsed,
        )

        return BatchResult(
            analyses=analyses,
            recordings_processed=len(analyses),
            recordings_skipped=skipped,
            recordings_failed=failed,
            elapsed_seconds=round(elapsed, 3),
            warnings=warnings,
        )
