"""Record parser: delimited text or row mappings -> classified SensorReadings.

Column lookup is name based and tolerant of case, spacing, punctuation and unit
suffixes ("Temperature (°C)", "temp_c", "Air Quality", "AQI" ...). Cells that do
not parse as numbers become absent values; a row is only dropped when its
timestamp and all four metrics are absent.
"""

import io
import math
import re
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

import pandas as pd
from aws_lambda_powertools import Logger

from .classifier import annotate
from .common.config import get_thresholds
from .common.models import METRIC_NAMES, MetricThresholds, SensorReading
from .common.timeutil import parse_timestamp

logger = Logger()

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "timestamp": ("timestamp", "datetime", "datetimeutc", "ts", "recordedat"),
    "date": ("date", "day"),
    "time": ("time", "hour"),
    "temperature": ("temperature", "temp", "tempc", "temperaturec", "temperaturecelsius"),
    "humidity": ("humidity", "hum", "humiditypct", "humiditypercent", "rh", "relativehumidity"),
    "light": ("light", "lux", "lightlux", "ambientlux", "illuminance"),
    "air_quality": ("airquality", "aqi", "iaq", "airqualityaqi", "airqualityindex"),
}

# Fallback when no alias matches exactly, e.g. "temperature_sensor_1"
_COLUMN_PREFIXES: dict[str, str] = {
    "temperature": "temperature",
    "humidity": "humidity",
    "light": "light",
    "air_quality": "airquality",
}
_FLAG_SUFFIXES = ("anomaly", "flag")


def normalize_header(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(name).lower())


def resolve_columns(headers: Iterable[str]) -> dict[str, str]:
    """Map canonical field names to the first matching source header."""
    normalized = [(normalize_header(h), h) for h in headers]
    resolved: dict[str, str] = {}
    for field, aliases in COLUMN_ALIASES.items():
        for key, header in normalized:
            if key in aliases:
                resolved[field] = header
                break
    for field, prefix in _COLUMN_PREFIXES.items():
        if field in resolved:
            continue
        for key, header in normalized:
            # "lightAnomaly" and friends hold 0/1 flags, not measurements
            if key.endswith(_FLAG_SUFFIXES):
                continue
            if key.startswith(prefix) and header not in resolved.values():
                resolved[field] = header
                break
    return resolved


def _cell_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        text = _cell_text(value)
        if text is None:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def _timestamp_text(row: Mapping[str, Any], columns: Mapping[str, str]) -> str | None:
    if "timestamp" in columns:
        combined = _cell_text(row.get(columns["timestamp"]))
        if combined:
            return combined
    date = _cell_text(row.get(columns["date"])) if "date" in columns else None
    time = _cell_text(row.get(columns["time"])) if "time" in columns else None
    if date and time:
        return f"{date} {time}"
    return date or time


def parse_row(row: Mapping[str, Any], columns: Mapping[str, str], thresholds: MetricThresholds) -> SensorReading | None:
    values = {metric: _to_float(row.get(columns[metric])) if metric in columns else None for metric in METRIC_NAMES}
    timestamp = parse_timestamp(_timestamp_text(row, columns))
    if timestamp is None and all(v is None for v in values.values()):
        return None
    return annotate(SensorReading(timestamp=timestamp, **values), thresholds)


def parse_rows(
    rows: Iterable[Mapping[str, Any]], thresholds: MetricThresholds | None = None
) -> list[SensorReading]:
    """Parse already-tabular rows, preserving order and dropping empty rows."""
    if thresholds is None:
        thresholds = get_thresholds()
    readings: list[SensorReading] = []
    for index, row in enumerate(rows):
        columns = resolve_columns(row.keys())
        reading = parse_row(row, columns, thresholds)
        if reading is None:
            logger.debug("empty_row_dropped", row_index=index)
            continue
        readings.append(reading)
    return readings


def parse_csv(text: str, thresholds: MetricThresholds | None = None) -> list[SensorReading]:
    """Parse one delimited blob (header row first) into readings in row order."""
    try:
        frame = pd.read_csv(
            io.StringIO(text.lstrip("\ufeff")),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            on_bad_lines="skip",
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError:
        logger.warning("csv_unreadable", length=len(text))
        return []

    records = [{str(k): v for k, v in record.items()} for record in frame.to_dict("records")]
    readings = parse_rows(records, thresholds)
    logger.debug("csv_parsed", rows=len(records), readings=len(readings))
    return readings
