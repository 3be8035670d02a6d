from collections.abc import Sequence
from functools import cmp_to_key

from pydantic import BaseModel, ConfigDict

from .common.models import SensorReading


class AssembledSeries(BaseModel):
    """Chronologically ordered readings from one or more sources."""

    model_config = ConfigDict(frozen=True)

    readings: tuple[SensorReading, ...] = ()
    source_names: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        """Display-only name of the originating source(s)."""
        if len(self.source_names) == 1:
            return self.source_names[0]
        if not self.source_names:
            return ""
        return f"{len(self.source_names)} files combined"

    def __len__(self) -> int:
        return len(self.readings)


def compare_timestamps(a: SensorReading, b: SensorReading) -> int:
    # Missing timestamps compare equal to everything, so they keep their input position
    if a.timestamp is None or b.timestamp is None:
        return 0
    if a.timestamp < b.timestamp:
        return -1
    if a.timestamp > b.timestamp:
        return 1
    return 0


def sort_readings(readings: Sequence[SensorReading]) -> list[SensorReading]:
    return sorted(readings, key=cmp_to_key(compare_timestamps))


def assemble(sources: Sequence[tuple[str, Sequence[SensorReading]]]) -> AssembledSeries:
    """Concatenate per-source readings in source order, then stable-sort by timestamp."""
    combined: list[SensorReading] = []
    for _name, readings in sources:
        combined.extend(readings)
    return AssembledSeries(
        readings=tuple(sort_readings(combined)),
        source_names=tuple(name for name, _readings in sources),
    )
