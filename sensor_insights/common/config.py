import os
from enum import StrEnum
from functools import cache
from typing import Final

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities import parameters
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import MetricThresholds

logger = Logger()


class LogLevel(StrEnum):
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


class Settings(BaseModel):
    log_level: LogLevel = Field(default=LogLevel.INFO, validation_alias="LOG_LEVEL")

    insights_enabled: bool = Field(default=True, validation_alias="INSIGHTS_ENABLED")
    bedrock_model_id: str = Field(
        default="anthropic.claude-sonnet-4-20250514-v1:0", validation_alias="BEDROCK_MODEL_ID"
    )
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    insights_max_tokens: int = Field(default=4096, validation_alias="INSIGHTS_MAX_TOKENS")

    # Optional SSM parameter holding a JSON threshold table
    thresholds_param_name: str = Field(default="", validation_alias="SENSOR_THRESHOLDS_PARAM_NAME")
    source_url_timeout_secs: int = Field(default=15, validation_alias="SOURCE_URL_TIMEOUT_SECS")


ENV_KEYS: Final[tuple[str, ...]] = (
    "LOG_LEVEL",
    "INSIGHTS_ENABLED",
    "BEDROCK_MODEL_ID",
    "AWS_REGION",
    "INSIGHTS_MAX_TOKENS",
    "SENSOR_THRESHOLDS_PARAM_NAME",
    "SOURCE_URL_TIMEOUT_SECS",
)


def load_settings() -> Settings:
    # Load .env if present (does nothing if file missing)
    load_dotenv()
    data: dict[str, str] = {}
    for key in ENV_KEYS:
        if key in os.environ:
            data[key] = os.environ[key]
    return Settings.model_validate(data)


def load_thresholds(param_name: str = "") -> MetricThresholds:
    """Return the threshold table, read from SSM when a parameter name is configured.

    Metrics missing from the stored document keep their built-in defaults.
    """
    if not param_name:
        return MetricThresholds()
    document = parameters.get_parameter(param_name, transform="json", force_fetch=True)
    thresholds = MetricThresholds.model_validate(document)
    logger.info("thresholds_loaded", param_name=param_name, thresholds=thresholds.model_dump())
    return thresholds


@cache
def get_thresholds() -> MetricThresholds:
    """Process-wide threshold table; loaded once, read-only afterwards."""
    return load_thresholds(load_settings().thresholds_param_name)
