from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable

from botocore.exceptions import BotoCoreError, ClientError

from src.adapters.aws import dynamodb_client
from src.app.ports.output import ISegmentCache
from src.domain.models import CacheEntry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def _to_epoch(value: datetime) -> str:
    """Exact epoch seconds with microseconds, e.g. "1767859200.250000"."""

    micros = (value - _EPOCH) // _MICROSECOND
    seconds, fraction = divmod(micros, 1_000_000)
    return f"{seconds}.{fraction:06d}"


def _from_epoch(raw: str) -> datetime:
    return _EPOCH + timedelta(microseconds=int(Decimal(raw) * 1_000_000))


@dataclass(slots=True)
class DynamoDbSegmentCache(ISegmentCache):
    """Segment cache shared between API and worker processes, in DynamoDB.

    `expires_at` is stored as epoch seconds, microseconds included, so it
    can double as the table's TTL attribute. DynamoDB deletes expired
    items lazily, so reads check the expiry themselves.

    Env vars:
      - SEGMENT_CACHE_TABLE (default: route-segment-cache)
      - ENDPOINT_URL (preferred for LocalStack)
      - AWS_REGION

    Notes:
      - The cache is an optimization only: DynamoDB errors are logged and
        treated as a miss (get) or ignored (put).
    """

    table_name: str | None = None
    clock: Callable[[], datetime] = _utcnow

    def _table(self) -> str:
        return (
            self.table_name
            or os.getenv("SEGMENT_CACHE_TABLE")
            or "route-segment-cache"
        )

    def get(self, key: str) -> CacheEntry | None:
        try:
            resp = dynamodb_client().get_item(
                TableName=self._table(), Key={"cache_key": {"S": key}}
            )
        except (BotoCoreError, ClientError):
            logger.warning("Segment cache read failed", exc_info=True)
            return None

        item = resp.get("Item")
        if not item:
            return None

        expires_at = _from_epoch(item["expires_at"]["N"])
        entry = CacheEntry(
            distance_m=float(item["distance_m"]["N"]),
            duration_s=float(item["duration_s"]["N"]),
            geometry=item["geometry"]["S"] if "geometry" in item else None,
            profile=item.get("profile", {}).get("S", ""),
            expires_at=expires_at,
        )
        if entry.is_expired(self.clock()):
            return None
        return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        item = {
            "cache_key": {"S": key},
            "distance_m": {"N": repr(float(entry.distance_m))},
            "duration_s": {"N": repr(float(entry.duration_s))},
            "profile": {"S": entry.profile},
            "expires_at": {"N": _to_epoch(entry.expires_at)},
        }
        if entry.geometry is not None:
            item["geometry"] = {"S": entry.geometry}

        try:
            dynamodb_client().put_item(TableName=self._table(), Item=item)
        except (BotoCoreError, ClientError):
            logger.warning("Segment cache write failed", exc_info=True)
