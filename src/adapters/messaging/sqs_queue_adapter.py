from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping

from botocore.exceptions import ClientError

from src.adapters.aws import sqs_client
from src.app.ports.output import IQueueService

logger = logging.getLogger(__name__)

# SQS caps per-message delay at 15 minutes.
_MAX_DELAY_S = 900


@dataclass(slots=True)
class SQSQueueAdapter(IQueueService):
    """Route calculation queue on SQS (supports LocalStack via env).

    Env vars:
      - ROUTE_CALC_QUEUE_URL
      - ENDPOINT_URL (preferred for LocalStack)
      - USE_LOCALSTACK, LOCALSTACK_ENDPOINT_URL, AWS_REGION
    """

    queue_url: str | None = None

    def _queue_url(self) -> str:
        value = self.queue_url or os.getenv("ROUTE_CALC_QUEUE_URL")
        if not value:
            raise RuntimeError("Missing ROUTE_CALC_QUEUE_URL")
        return value

    def publish_request(self, message: Mapping[str, Any], *, delay_s: int = 0) -> str:
        sqs = sqs_client()
        resp = sqs.send_message(
            QueueUrl=self._queue_url(),
            MessageBody=json.dumps(dict(message)),
            DelaySeconds=max(0, min(_MAX_DELAY_S, int(delay_s))),
        )
        return str(resp.get("MessageId", ""))

    def consume_request(
        self, *, max_messages: int = 1, wait_time_s: int = 10
    ) -> list[Mapping[str, Any]]:
        sqs = sqs_client()

        try:
            resp = sqs.receive_message(
                QueueUrl=self._queue_url(),
                MaxNumberOfMessages=max(1, min(10, int(max_messages))),
                WaitTimeSeconds=max(0, min(20, int(wait_time_s))),
            )
        except ClientError as exc:
            # LocalStack race: worker may start polling before the queue exists.
            code = exc.response.get("Error", {}).get("Code")
            if code in {"AWS.SimpleQueueService.NonExistentQueue", "QueueDoesNotExist"}:
                return []
            raise

        bodies: list[Mapping[str, Any]] = []
        for msg in resp.get("Messages", []) or []:
            raw_body = msg.get("Body")
            receipt = msg.get("ReceiptHandle")
            # Retries are re-published explicitly, so delete on receipt.
            if receipt:
                sqs.delete_message(QueueUrl=self._queue_url(), ReceiptHandle=receipt)
            if raw_body is None:
                continue

            try:
                decoded = json.loads(raw_body)
            except json.JSONDecodeError:
                logger.warning(
                    "Dropping undecodable queue message",
                    extra={"body": raw_body[:200]},
                )
                continue
            if isinstance(decoded, dict):
                bodies.append(decoded)

        return bodies
