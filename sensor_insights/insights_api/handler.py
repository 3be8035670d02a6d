"""
Sensor Insights API Lambda

Accepts one or more CSV documents (inline, by URL, or the built-in sample),
runs them through the pipeline and returns readings, statistics and insights.
"""

import json
from typing import Any

from aws_lambda_powertools import Logger
from pydantic import ValidationError

from ..common.config import get_thresholds, load_settings
from ..insights.collaborator import make_collaborator
from ..pipeline import NoUsableRowsError, run_pipeline
from ..sources import SourceFile, SourceLoadError, load_from_url, sample_source

logger = Logger()


def _response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def _parse_body(event: dict[str, Any]) -> dict[str, Any]:
    body = event.get("body", event)
    if isinstance(body, str):
        body = json.loads(body or "{}")
    return body if isinstance(body, dict) else {}


def collect_sources(body: dict[str, Any], url_timeout: int) -> list[SourceFile]:
    sources = [SourceFile.model_validate(f) for f in body.get("files") or []]
    if body.get("url"):
        sources.append(load_from_url(str(body["url"]), timeout=url_timeout))
    if body.get("sample"):
        sources.append(sample_source())
    return sources


@logger.inject_lambda_context
def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    try:
        settings = load_settings()
        logger.setLevel(settings.log_level.value)
        body = _parse_body(event)
        sources = collect_sources(body, settings.source_url_timeout_secs)
        if not sources:
            return _response(400, {"error": "Provide at least one of: files, url, sample"})

        result = run_pipeline(sources, make_collaborator(settings), get_thresholds())
        return _response(200, result.to_payload())

    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Invalid request body")
        return _response(400, {"error": f"Invalid request body: {e}"})
    except (NoUsableRowsError, SourceLoadError) as e:
        return _response(400, {"error": str(e)})
    except Exception as e:
        logger.exception("Unhandled error while processing upload")
        return _response(500, {"error": str(e)})
