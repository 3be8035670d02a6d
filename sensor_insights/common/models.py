from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Severity = Literal["info", "warning", "critical", "success"]

METRIC_NAMES: tuple[str, ...] = ("temperature", "humidity", "light", "air_quality")

# metric attribute -> anomaly flag attribute on SensorReading
FLAG_FIELDS: dict[str, str] = {
    "temperature": "temp_anomaly",
    "humidity": "hum_anomaly",
    "light": "light_anomaly",
    "air_quality": "air_anomaly",
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class AnomalyFlags(_Frozen):
    temp_anomaly: bool = False
    hum_anomaly: bool = False
    light_anomaly: bool = False
    air_anomaly: bool = False


class SensorReading(_Frozen):
    """One timestamped observation; absent values are None, never zero."""

    timestamp: datetime | None = None
    temperature: float | None = None
    humidity: float | None = None
    light: float | None = None
    air_quality: float | None = None
    temp_anomaly: bool = False
    hum_anomaly: bool = False
    light_anomaly: bool = False
    air_anomaly: bool = False

    def value_of(self, metric: str) -> float | None:
        return getattr(self, metric)

    def is_flagged(self, metric: str) -> bool:
        return bool(getattr(self, FLAG_FIELDS[metric]))


class MetricThreshold(_Frozen):
    min: float | None = None
    max: float | None = None

    def describe(self, unit: str) -> str:
        if self.min is not None and self.max is not None:
            return f"Safe range: {self.min:g}-{self.max:g}{unit}"
        if self.max is not None:
            return f"Good range: <{self.max:g}{unit}"
        if self.min is not None:
            return f"Good range: >{self.min:g}{unit}"
        return "No configured range"


class MetricThresholds(_Frozen):
    temperature: MetricThreshold = Field(default_factory=lambda: MetricThreshold(min=18, max=28))
    humidity: MetricThreshold = Field(default_factory=lambda: MetricThreshold(min=30, max=60))
    light: MetricThreshold = Field(default_factory=lambda: MetricThreshold(min=100, max=1000))
    air_quality: MetricThreshold = Field(default_factory=lambda: MetricThreshold(max=50))

    def for_metric(self, metric: str) -> MetricThreshold:
        return getattr(self, metric)


class MetricStats(_Frozen):
    current: float = 0.0
    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    change: float = 0.0
    anomalies: int = 0


class StatsCollection(_Frozen):
    temperature: MetricStats = Field(default_factory=MetricStats)
    humidity: MetricStats = Field(default_factory=MetricStats)
    light: MetricStats = Field(default_factory=MetricStats)
    air_quality: MetricStats = Field(default_factory=MetricStats)

    def for_metric(self, metric: str) -> MetricStats:
        return getattr(self, metric)


class Insight(_Frozen):
    severity: Severity
    title: str
    description: str
    recommendation: str
