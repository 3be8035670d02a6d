import re
from datetime import UTC, datetime

import pandas as pd

# "10:00", "10:00:30.5", "9:15 pm", "9am": a clock reading with no calendar date
_TIME_ONLY = re.compile(r"^\d{1,2}(?::\d{2}){0,2}(?:\.\d+)?\s*(?:[ap]\.?m\.?)?$", re.IGNORECASE)


def parse_timestamp(text: str | None) -> datetime | None:
    """Parse a date/time cell; returns None when the text is not a datetime.

    A bare time of day has no date to anchor it and is treated as absent rather
    than being placed on the current day. Timezone-aware values are converted to
    UTC and returned naive so that every timestamp in a series compares against
    every other.
    """
    if text is None or not str(text).strip():
        return None
    text = str(text).strip()
    if _TIME_ONLY.match(text):
        return None
    try:
        ts = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    dt: datetime = ts.to_pydatetime()
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def format_timestamp(dt: datetime | None) -> str:
    return dt.isoformat(timespec="minutes") if dt is not None else "unknown"
