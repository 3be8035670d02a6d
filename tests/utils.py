from dataclasses import dataclass


@dataclass
class FakeLambdaContext:
    function_name: str = "sensor-insights-api"
    function_version: str = "$LATEST"
    memory_limit_in_mb: int = 256
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:sensor-insights-api"
    aws_request_id: str = "00000000-0000-0000-0000-000000000000"
    log_group_name: str = "/aws/lambda/sensor-insights-api"
    log_stream_name: str = "2025/01/01/[$LATEST]test"

    def get_remaining_time_in_millis(self) -> int:
        return 30_000
