import json
from collections.abc import Sequence
from typing import Any

from aws_lambda_powertools import Logger
from pydantic import TypeAdapter, ValidationError

from ..common.config import get_thresholds
from ..common.models import Insight, MetricThresholds, SensorReading, StatsCollection
from ..common.timeutil import format_timestamp
from .collaborator import InsightCollaborator, InsightRequest

logger = Logger()

MAX_INSIGHTS = 4

# metric -> (label, unit, decimals)
METRIC_FORMATS: dict[str, tuple[str, str, int]] = {
    "temperature": ("Temperature", "°C", 1),
    "humidity": ("Humidity", "%", 1),
    "light": ("Light", " lux", 0),
    "air_quality": ("Air Quality", " AQI", 0),
}

_insight_list = TypeAdapter(list[Insight])


class InsightResponseError(ValueError):
    """Raised when a collaborator response does not match the Insight shape."""


def summarize_metric(metric: str, stats: StatsCollection, thresholds: MetricThresholds) -> str:
    label, unit, decimals = METRIC_FORMATS[metric]
    s = stats.for_metric(metric)

    def fmt(value: float) -> str:
        return f"{value:.{decimals}f}"

    return (
        f"- {label}: Current: {fmt(s.current)}{unit}, Avg: {fmt(s.avg)}{unit}, "
        f"Range: {fmt(s.min)}-{fmt(s.max)}{unit}. "
        f"Anomalies detected in {s.anomalies} readings. "
        f"{thresholds.for_metric(metric).describe(unit)}."
    )


def build_request(
    readings: Sequence[SensorReading],
    stats: StatsCollection,
    thresholds: MetricThresholds | None = None,
) -> InsightRequest:
    """Embed count, time span and per-metric statistics into a collaborator request."""
    if thresholds is None:
        thresholds = get_thresholds()
    start = readings[0].timestamp if readings else None
    end = readings[-1].timestamp if readings else None
    summary = "\n".join(summarize_metric(metric, stats, thresholds) for metric in METRIC_FORMATS)

    prompt = f"""Analyze the following summary of environmental sensor data.
Data points: {len(readings)}
Time range: {format_timestamp(start)} to {format_timestamp(end)}

Statistical Summary:
{summary}

Provide up to {MAX_INSIGHTS} key insights. Identify significant trends, anomalies, and correlations. \
For each insight, provide a title, a short description, a severity level ('info', 'warning', 'critical', \
'success'), and a concise, actionable recommendation. If all readings are within optimal ranges, provide a \
'success' insight confirming system stability."""

    return InsightRequest(
        reading_count=len(readings),
        start=start,
        end=end,
        stats=stats,
        max_insights=MAX_INSIGHTS,
        prompt=prompt,
    )


def _extract_json(text: str) -> str:
    # Extract JSON from response if wrapped in markdown
    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        return text[start:end].strip()
    if "```" in text:
        start = text.find("```") + 3
        end = text.find("```", start)
        return text[start:end].strip()
    return text.strip()


def parse_response(raw: str | Sequence[Any]) -> list[Insight]:
    """Validate a collaborator response as at most MAX_INSIGHTS insights."""
    if isinstance(raw, str):
        try:
            data = json.loads(_extract_json(raw))
        except json.JSONDecodeError as e:
            raise InsightResponseError(f"Response is not valid JSON: {e}") from e
    else:
        data = list(raw)

    if not isinstance(data, list):
        raise InsightResponseError("Response must be a JSON array of insights")
    if len(data) > MAX_INSIGHTS:
        raise InsightResponseError(f"Response contains {len(data)} insights; at most {MAX_INSIGHTS} allowed")
    try:
        return _insight_list.validate_python(data)
    except ValidationError as e:
        raise InsightResponseError(f"Response does not match the insight shape: {e.error_count()} errors") from e


def unavailable_insight() -> Insight:
    return Insight(
        severity="warning",
        title="AI Insights Unavailable",
        description="Insight generation failed: no text-generation service is configured (missing credentials or disabled).",
        recommendation="Configure AWS credentials with Bedrock access and set INSIGHTS_ENABLED=true to enable AI-powered insights.",
    )


def failed_insight() -> Insight:
    return Insight(
        severity="warning",
        title="Insight Generation Failed",
        description="Insight generation failed: the AI service could not be reached or returned an unexpected response.",
        recommendation="The readings and statistics are still accurate. Try again later to request AI insights.",
    )


def generate_insights(
    readings: Sequence[SensorReading],
    stats: StatsCollection,
    collaborator: InsightCollaborator | None,
    thresholds: MetricThresholds | None = None,
) -> list[Insight]:
    """Request insights for a series, degrading to one local warning on any failure."""
    if collaborator is None:
        return [unavailable_insight()]
    if not readings:
        return []

    request = build_request(readings, stats, thresholds)
    try:
        raw = collaborator.generate_insights(request)
        insights = parse_response(raw)
    except InsightResponseError:
        logger.exception("Collaborator returned a malformed insight response")
        return [failed_insight()]
    except Exception:
        logger.exception("Error calling insight collaborator")
        return [failed_insight()]

    logger.info("insights_generated", count=len(insights), readings=request.reading_count)
    return insights
