from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

import boto3
from botocore.client import BaseClient
from botocore.config import Config

from src.app.config import env_bool

if TYPE_CHECKING:
    from mypy_boto3_dynamodb import DynamoDBClient
    from mypy_boto3_sqs import SQSClient
else:
    DynamoDBClient = BaseClient  # type: ignore[misc,assignment]
    SQSClient = BaseClient  # type: ignore[misc,assignment]

LOCALSTACK_DEFAULT_URL = "http://localhost:4566"

# SQS long polling waits up to 20s; reads must outlast it.
_CLIENT_CONFIG = Config(
    connect_timeout=5,
    read_timeout=30,
    retries={"max_attempts": 3, "mode": "standard"},
)


@dataclass(frozen=True, slots=True)
class AwsRuntimeConfig:
    """Where the queue and the DynamoDB tables live.

    Env vars:
      - ENDPOINT_URL: explicit endpoint, e.g. LocalStack
      - USE_LOCALSTACK, LOCALSTACK_ENDPOINT_URL: fallback endpoint switch
      - AWS_REGION (default eu-west-1)
    """

    use_localstack: bool
    region: str
    endpoint_url: str | None

    @staticmethod
    def from_env() -> "AwsRuntimeConfig":
        endpoint_url = (os.getenv("ENDPOINT_URL") or "").strip() or None
        return AwsRuntimeConfig(
            use_localstack=env_bool("USE_LOCALSTACK", False),
            region=os.getenv("AWS_REGION", "eu-west-1"),
            endpoint_url=endpoint_url,
        )

    def resolved_endpoint_url(self) -> str | None:
        """ENDPOINT_URL wins; USE_LOCALSTACK falls back to LocalStack; else AWS."""

        if self.endpoint_url:
            return self.endpoint_url
        if self.use_localstack:
            return os.getenv("LOCALSTACK_ENDPOINT_URL", LOCALSTACK_DEFAULT_URL)
        return None


def _client(service: str) -> BaseClient:
    # Sessions are not thread-safe; the worker calls this from pool threads.
    cfg = AwsRuntimeConfig.from_env()
    session = boto3.session.Session(region_name=cfg.region)
    return session.client(
        service, endpoint_url=cfg.resolved_endpoint_url(), config=_CLIENT_CONFIG
    )


def sqs_client() -> SQSClient:
    return _client("sqs")


def dynamodb_client() -> DynamoDBClient:
    return _client("dynamodb")
