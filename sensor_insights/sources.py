from datetime import datetime, timedelta
from urllib.parse import unquote, urlparse

import numpy as np
import pandas as pd
import requests  # type: ignore[import-untyped]
from aws_lambda_powertools import Logger
from pydantic import BaseModel, ConfigDict, Field

logger = Logger()

SAMPLE_FILE_NAME = "sample-sensor-data.csv"


class SourceFile(BaseModel):
    """Raw delimited text plus the name it was uploaded or fetched under."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(validation_alias="fileName")
    content: str


class SourceLoadError(RuntimeError):
    """Raised when a remote source cannot be fetched."""


def _name_from_url(url: str) -> str:
    path = urlparse(url).path
    name = unquote(path.rsplit("/", 1)[-1]) if path else ""
    return name or "remote.csv"


def load_from_url(url: str, timeout: int = 15) -> SourceFile:
    """Fetch a CSV document over HTTP(S)."""
    if urlparse(url).scheme not in ("http", "https"):
        raise SourceLoadError(f"Unsupported URL scheme: {url}")
    try:
        resp = requests.get(url, headers={"Accept": "text/csv, text/plain"}, timeout=timeout)
    except requests.RequestException as e:
        raise SourceLoadError(f"Failed to fetch {url}: {e}") from e
    logger.info("source_fetched", url=url, status=resp.status_code, length=len(resp.content))
    if resp.status_code >= 400:
        raise SourceLoadError(f"Failed to fetch {url}: HTTP {resp.status_code}")
    return SourceFile(name=_name_from_url(url), content=resp.text)


def sample_source(hours: int = 24, start: datetime | None = None, seed: int = 7) -> SourceFile:
    """Generate a deterministic day of hourly readings with a few out-of-range values."""
    rng = np.random.default_rng(seed)
    start = start or datetime(2024, 1, 1, 0, 0)
    hour_of_day = np.arange(hours) % 24
    daylight = np.clip(np.sin((hour_of_day - 6) / 12 * np.pi), 0, None)

    stamps = [start + timedelta(hours=i) for i in range(hours)]
    frame = pd.DataFrame(
        {
            "date": [ts.strftime("%Y-%m-%d") for ts in stamps],
            "time": [ts.strftime("%H:%M") for ts in stamps],
            "temperature": np.round(20 + 6 * daylight + rng.normal(0, 0.8, hours), 1),
            "humidity": np.round(55 - 12 * daylight + rng.normal(0, 3, hours), 1),
            "light": np.round(40 + 900 * daylight + rng.normal(0, 25, hours)).clip(0),
            "airQuality": np.round(35 + 20 * daylight + rng.normal(0, 6, hours)).clip(0),
        }
    )
    return SourceFile(name=SAMPLE_FILE_NAME, content=frame.to_csv(index=False))
