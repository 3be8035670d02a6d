"""
Insight collaborator - external text generation behind a small capability.

The builder only depends on `InsightCollaborator`; the Bedrock implementation
uses the Strands framework and is created only when AWS credentials exist.
"""

from datetime import datetime
from typing import Protocol

import boto3
from aws_lambda_powertools import Logger
from pydantic import BaseModel, ConfigDict
from strands import Agent
from strands.models.bedrock import BedrockModel

from ..common.config import Settings
from ..common.models import StatsCollection

logger = Logger()


class InsightRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    reading_count: int
    start: datetime | None
    end: datetime | None
    stats: StatsCollection
    max_insights: int
    prompt: str


class InsightCollaborator(Protocol):
    def generate_insights(self, request: InsightRequest) -> str:
        """Return the raw response text for `request`; raise on failure."""
        ...


class BedrockInsightCollaborator:
    """Generates insights with a Strands agent backed by a Bedrock model."""

    SYSTEM_PROMPT = """You are an environmental monitoring analyst reviewing indoor sensor data \
(temperature, humidity, light and air quality).

You receive a statistical summary of a recording session together with the configured safe ranges.
Base every observation on the numbers provided; do not invent readings.

Respond ONLY with a JSON array. Each element must be an object with exactly these keys:
{
  "severity": "info" | "warning" | "critical" | "success",
  "title": str,
  "description": str,
  "recommendation": str
}
Do not wrap the array in another object and do not add commentary outside the JSON."""

    def __init__(self, model_id: str, region_name: str, max_tokens: int = 4096) -> None:
        self.model = BedrockModel(
            model_id=model_id,
            region_name=region_name,
            max_tokens=max_tokens,
        )

    def generate_insights(self, request: InsightRequest) -> str:
        agent = Agent(
            model=self.model,
            system_prompt=self.SYSTEM_PROMPT,
            callback_handler=None,
        )
        response = agent(request.prompt)
        return str(response)


def has_aws_credentials(region_name: str) -> bool:
    session = boto3.session.Session(region_name=region_name)
    return session.get_credentials() is not None


def make_collaborator(settings: Settings) -> InsightCollaborator | None:
    """Build the configured collaborator, or None when insights cannot be requested."""
    if not settings.insights_enabled:
        logger.info("Insight generation disabled by configuration")
        return None
    if not has_aws_credentials(settings.aws_region):
        logger.warning("AWS credentials not found; AI insights are disabled")
        return None
    return BedrockInsightCollaborator(
        model_id=settings.bedrock_model_id,
        region_name=settings.aws_region,
        max_tokens=settings.insights_max_tokens,
    )
