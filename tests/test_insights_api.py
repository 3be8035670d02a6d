"""Unit tests for the Sensor Insights API Lambda."""

import json
import logging
from typing import Any
from unittest.mock import patch

import pytest

from sensor_insights.insights.collaborator import InsightRequest
from sensor_insights.insights_api.handler import lambda_handler
from sensor_insights.insights_api.handler import logger as handler_logger
from sensor_insights.sources import SourceFile, SourceLoadError

from .utils import FakeLambdaContext

CSV_A = "date,time,temperature,humidity,light,airQuality\n2024-01-01,10:00,22.5,45,450,30\n2024-01-01,12:00,30.0,48,520,35\n"
CSV_B = "date,time,temperature,humidity,light,airQuality\n2024-01-01,11:00,23.0,47,480,32\n"


class _Collaborator:
    def generate_insights(self, request: InsightRequest) -> str:
        return json.dumps(
            [
                {
                    "severity": "critical",
                    "title": f"{request.reading_count} readings",
                    "description": "Temperature exceeded the safe range.",
                    "recommendation": "Ventilate the room.",
                }
            ]
        )


def _invoke(body: Any) -> dict[str, Any]:
    event = {"body": json.dumps(body) if not isinstance(body, str) else body}
    return lambda_handler(event, FakeLambdaContext())


def test_files_are_combined_and_analyzed() -> None:
    with patch("sensor_insights.insights_api.handler.make_collaborator", return_value=_Collaborator()):
        result = _invoke({"files": [{"fileName": "a.csv", "content": CSV_A}, {"fileName": "b.csv", "content": CSV_B}]})

    assert result["statusCode"] == 200
    body = json.loads(result["body"])
    assert body["label"] == "2 files combined"
    assert body["readingCount"] == 3
    assert [r["temperature"] for r in body["readings"]] == [22.5, 23.0, 30.0]
    assert body["stats"]["temperature"]["anomalies"] == 1
    assert body["insights"][0]["severity"] == "critical"
    assert body["insights"][0]["title"] == "3 readings"


def test_without_collaborator_returns_warning_insight() -> None:
    result = _invoke({"files": [{"fileName": "a.csv", "content": CSV_A}]})

    assert result["statusCode"] == 200
    body = json.loads(result["body"])
    assert len(body["insights"]) == 1
    assert body["insights"][0]["severity"] == "warning"


def test_sample_data_request() -> None:
    result = _invoke({"sample": True})

    assert result["statusCode"] == 200
    body = json.loads(result["body"])
    assert body["label"] == "sample-sensor-data.csv"
    assert body["readingCount"] == 24


def test_url_source_is_loaded() -> None:
    remote = SourceFile(name="remote.csv", content=CSV_B)
    with patch("sensor_insights.insights_api.handler.load_from_url", return_value=remote) as loader:
        result = _invoke({"url": "https://example.com/remote.csv"})

    assert result["statusCode"] == 200
    assert json.loads(result["body"])["label"] == "remote.csv"
    assert loader.call_args.args == ("https://example.com/remote.csv",)


def test_url_load_failure_is_client_error() -> None:
    with patch("sensor_insights.insights_api.handler.load_from_url", side_effect=SourceLoadError("HTTP 404")):
        result = _invoke({"url": "https://example.com/missing.csv"})

    assert result["statusCode"] == 400
    assert "HTTP 404" in json.loads(result["body"])["error"]


def test_missing_input() -> None:
    result = _invoke({})

    assert result["statusCode"] == 400
    assert "files" in json.loads(result["body"])["error"]


def test_no_usable_rows() -> None:
    result = _invoke({"files": [{"fileName": "empty.csv", "content": "date,time,temperature\n"}]})

    assert result["statusCode"] == 400
    assert "No valid sensor readings" in json.loads(result["body"])["error"]


def test_invalid_body() -> None:
    assert _invoke("{not json")["statusCode"] == 400
    assert _invoke({"files": [{"content": "x"}]})["statusCode"] == 400


def test_dict_event_without_body() -> None:
    event = {"files": [{"fileName": "a.csv", "content": CSV_A}]}

    result = lambda_handler(event, FakeLambdaContext())

    assert result["statusCode"] == 200


def test_unexpected_error_is_server_error() -> None:
    with patch("sensor_insights.insights_api.handler.run_pipeline", side_effect=RuntimeError("boom")):
        result = _invoke({"sample": True})

    assert result["statusCode"] == 500
    assert json.loads(result["body"])["error"] == "boom"


def test_body_is_strict_json_when_cells_are_infinite() -> None:
    csv = "timestamp,temperature\n2024-01-01T10:00,inf\n2024-01-01T11:00,-Infinity\n2024-01-01T12:00,20\n"

    def _reject(token: str) -> Any:
        raise ValueError(token)

    result = _invoke({"files": [{"fileName": "inf.csv", "content": csv}]})

    assert result["statusCode"] == 200
    body = json.loads(result["body"], parse_constant=_reject)
    assert [r["temperature"] for r in body["readings"]] == [None, None, 20.0]
    assert body["stats"]["temperature"]["avg"] == 20.0


def test_log_level_setting_is_applied(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    _invoke({"sample": True})
    assert handler_logger.log_level == logging.DEBUG

    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    _invoke({"sample": True})
    assert handler_logger.log_level == logging.WARNING

    monkeypatch.delenv("LOG_LEVEL")
    _invoke({"sample": True})
    assert handler_logger.log_level == logging.INFO
