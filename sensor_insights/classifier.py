from .common.models import FLAG_FIELDS, METRIC_NAMES, AnomalyFlags, MetricThreshold, MetricThresholds, SensorReading


def is_out_of_range(value: float | None, threshold: MetricThreshold) -> bool:
    if value is None:
        return False
    if threshold.min is not None and value < threshold.min:
        return True
    return threshold.max is not None and value > threshold.max


def classify(reading: SensorReading, thresholds: MetricThresholds) -> AnomalyFlags:
    """Flag each metric whose present value falls outside its configured range.

    Pure: the same reading and thresholds always yield the same flags, and an
    absent value is never flagged.
    """
    return AnomalyFlags(
        **{
            FLAG_FIELDS[metric]: is_out_of_range(reading.value_of(metric), thresholds.for_metric(metric))
            for metric in METRIC_NAMES
        }
    )


def annotate(reading: SensorReading, thresholds: MetricThresholds) -> SensorReading:
    """Return a copy of the reading carrying flags consistent with `thresholds`."""
    flags = classify(reading, thresholds)
    return reading.model_copy(update=flags.model_dump())
