import os
from collections.abc import Iterator

import boto3
import pytest
from moto import mock_aws

# Ensure AWS SDK has a region and fake credentials for moto
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")

os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "sensor-insights")
os.environ.setdefault("SENSOR_THRESHOLDS_PARAM_NAME", "/sensor-insights/thresholds")
# Tests inject their own collaborators; never reach Bedrock
os.environ.setdefault("INSIGHTS_ENABLED", "false")

THRESHOLDS_DOCUMENT = (
    '{"temperature": {"min": 18, "max": 28}, "humidity": {"min": 30, "max": 60},'
    ' "light": {"min": 100, "max": 1000}, "air_quality": {"max": 50}}'
)


@pytest.fixture(scope="session", autouse=True)
def aws_moto() -> Iterator[None]:
    with mock_aws():
        ssm = boto3.client("ssm")
        ssm.put_parameter(
            Name=os.environ["SENSOR_THRESHOLDS_PARAM_NAME"],
            Type="String",
            Value=THRESHOLDS_DOCUMENT,
            Overwrite=True,
        )
        yield
