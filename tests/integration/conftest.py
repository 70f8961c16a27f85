from __future__ import annotations

import os
import urllib.request
from typing import Callable

import pytest

from src.adapters.aws import dynamodb_client, sqs_client

DEFAULT_ENDPOINT = "http://localhost:4566"


def _localstack_healthy(endpoint_url: str) -> bool:
    url = endpoint_url.rstrip("/") + "/_localstack/health"
    try:
        with urllib.request.urlopen(url, timeout=1.5) as resp:  # nosec B310
            return 200 <= resp.status < 300
    except OSError:
        return False


@pytest.fixture(scope="session", autouse=True)
def localstack_env() -> None:
    """Point the AWS adapters at LocalStack unless the caller already did."""

    os.environ.setdefault("USE_LOCALSTACK", "true")
    os.environ.setdefault("ENDPOINT_URL", DEFAULT_ENDPOINT)
    os.environ.setdefault("AWS_REGION", "eu-west-1")

    # boto3 refuses to sign requests without credentials.
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")


@pytest.fixture(scope="session")
def require_localstack(localstack_env: None) -> str:
    endpoint_url = os.environ.get("ENDPOINT_URL", DEFAULT_ENDPOINT)
    if not _localstack_healthy(endpoint_url):
        msg = f"LocalStack not reachable at {endpoint_url}"

        # CI starts LocalStack, so a missing one there is a real failure.
        if os.getenv("CI") or os.getenv("REQUIRE_LOCALSTACK"):
            pytest.fail(msg, pytrace=False)

        pytest.skip(f"{msg}; skipping integration tests")
    return endpoint_url


@pytest.fixture
def calc_queue_url(
    require_localstack: str, monkeypatch: pytest.MonkeyPatch
) -> str:
    queue_url = sqs_client().create_queue(QueueName="route-calc-test-queue")[
        "QueueUrl"
    ]
    monkeypatch.setenv("ROUTE_CALC_QUEUE_URL", queue_url)
    return queue_url


@pytest.fixture
def hash_key_table(require_localstack: str) -> Callable[[str, str], str]:
    """Create (once) a pay-per-request table keyed by a single string attribute."""

    def _ensure(table: str, key: str) -> str:
        ddb = dynamodb_client()
        if table in ddb.list_tables().get("TableNames", []):
            return table

        ddb.create_table(
            TableName=table,
            BillingMode="PAY_PER_REQUEST",
            AttributeDefinitions=[{"AttributeName": key, "AttributeType": "S"}],
            KeySchema=[{"AttributeName": key, "KeyType": "HASH"}],
        )
        ddb.get_waiter("table_exists").wait(TableName=table)
        return table

    return _ensure
