"""
Upload-to-dashboard pipeline and the session state machine that drives it.

States: awaiting-input -> processing -> ready, with failed reachable from
processing and reset returning to awaiting-input from anywhere. When uploads
overlap the latest one wins: every upload gets a new id and results carrying
an older id are discarded.
"""

from collections.abc import Sequence
from enum import StrEnum
from typing import Any

from aws_lambda_powertools import Logger
from pydantic import BaseModel, ConfigDict

from .assembler import AssembledSeries, assemble
from .common.config import get_thresholds
from .common.models import Insight, MetricThresholds, StatsCollection
from .insights.builder import generate_insights
from .insights.collaborator import InsightCollaborator
from .parser import parse_csv
from .sources import SourceFile
from .stats import aggregate

logger = Logger()

NO_USABLE_ROWS_MESSAGE = "No valid sensor readings found. Check that the file has a header row and data rows."


class PipelineState(StrEnum):
    AWAITING_INPUT = "awaiting-input"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class NoUsableRowsError(ValueError):
    """Raised when none of the supplied inputs contains a usable row."""


class InvalidTransitionError(RuntimeError):
    """Raised when a trigger is not allowed in the session's current state."""


class DashboardResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    series: AssembledSeries
    stats: StatsCollection
    insights: tuple[Insight, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "label": self.series.label,
            "sourceNames": list(self.series.source_names),
            "readingCount": len(self.series),
            "readings": [r.model_dump(mode="json", by_alias=True) for r in self.series.readings],
            "stats": self.stats.model_dump(mode="json", by_alias=True),
            "insights": [i.model_dump(mode="json", by_alias=True) for i in self.insights],
        }


def parse_sources(sources: Sequence[SourceFile], thresholds: MetricThresholds | None = None) -> AssembledSeries:
    """Parse every source independently and merge them into one ordered series."""
    if thresholds is None:
        thresholds = get_thresholds()
    series = assemble([(source.name, parse_csv(source.content, thresholds)) for source in sources])
    if not series.readings:
        raise NoUsableRowsError(NO_USABLE_ROWS_MESSAGE)
    logger.info("series_assembled", label=series.label, readings=len(series))
    return series


def run_pipeline(
    sources: Sequence[SourceFile],
    collaborator: InsightCollaborator | None,
    thresholds: MetricThresholds | None = None,
) -> DashboardResult:
    series = parse_sources(sources, thresholds)
    stats = aggregate(series.readings)
    insights = generate_insights(series.readings, stats, collaborator, thresholds)
    return DashboardResult(series=series, stats=stats, insights=tuple(insights))


class DashboardSession:
    """Holds one upload's data between an upload and a reset."""

    def __init__(self, collaborator: InsightCollaborator | None, thresholds: MetricThresholds | None = None) -> None:
        self.collaborator = collaborator
        self.thresholds = thresholds if thresholds is not None else get_thresholds()
        self.upload_id = 0
        self._clear()

    def _clear(self) -> None:
        self.state = PipelineState.AWAITING_INPUT
        self.series: AssembledSeries | None = None
        self.stats: StatsCollection | None = None
        self.insights: list[Insight] = []
        self.insights_pending = False
        self.error: str | None = None

    def _is_current(self, upload_id: int, trigger: str) -> bool:
        if upload_id != self.upload_id:
            logger.info("stale_result_discarded", trigger=trigger, upload_id=upload_id, current=self.upload_id)
            return False
        return True

    def _require(self, trigger: str, *allowed: PipelineState) -> None:
        if self.state not in allowed:
            raise InvalidTransitionError(f"'{trigger}' is not allowed in state '{self.state}'")

    def upload_received(self) -> int:
        """Start processing a new upload; supersedes any upload still in flight."""
        self._require("upload-received", PipelineState.AWAITING_INPUT, PipelineState.PROCESSING, PipelineState.READY)
        self._clear()
        self.upload_id += 1
        self.state = PipelineState.PROCESSING
        return self.upload_id

    def parse_complete(self, upload_id: int, series: AssembledSeries, stats: StatsCollection) -> bool:
        if not self._is_current(upload_id, "parse-complete"):
            return False
        self._require("parse-complete", PipelineState.PROCESSING)
        self.series = series
        self.stats = stats
        self.insights_pending = True
        self.state = PipelineState.READY
        return True

    def insights_resolved(self, upload_id: int, insights: Sequence[Insight]) -> bool:
        if not self._is_current(upload_id, "insights-resolved"):
            return False
        self._require("insights-resolved", PipelineState.READY)
        self.insights = list(insights)
        self.insights_pending = False
        return True

    def fail(self, upload_id: int, message: str) -> bool:
        if not self._is_current(upload_id, "failed"):
            return False
        self._require("failed", PipelineState.PROCESSING)
        self.error = message
        self.state = PipelineState.FAILED
        logger.warning("upload_failed", upload_id=upload_id, error=message)
        return True

    def reset(self) -> None:
        """Clear all held data and return to awaiting input."""
        self._clear()

    def process(self, sources: Sequence[SourceFile]) -> PipelineState:
        """Run one upload through parse, aggregation and insight generation."""
        upload_id = self.upload_received()
        try:
            series = parse_sources(sources, self.thresholds)
        except NoUsableRowsError as e:
            self.fail(upload_id, str(e))
            return self.state

        stats = aggregate(series.readings)
        self.parse_complete(upload_id, series, stats)
        insights = generate_insights(series.readings, stats, self.collaborator, self.thresholds)
        self.insights_resolved(upload_id, insights)
        return self.state

    def result(self) -> DashboardResult | None:
        if self.state != PipelineState.READY or self.series is None or self.stats is None:
            return None
        return DashboardResult(series=self.series, stats=self.stats, insights=tuple(self.insights))
