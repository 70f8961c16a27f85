from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass

from botocore.exceptions import ClientError

from src.adapters.aws import dynamodb_client
from src.adapters.persistence.route_document import (
    route_from_document,
    route_to_document,
)
from src.app.ports.output import IRouteRepository
from src.domain.exceptions import ConcurrentModification
from src.domain.models import Route


@dataclass(slots=True)
class DynamoDbRouteRepository(IRouteRepository):
    """Stores each Route aggregate as a single DynamoDB item.

    Waypoints and segments live inside the item's JSON document, so one
    conditional `put_item` commits the whole aggregate atomically.

    Env vars:
      - ROUTES_TABLE (default: route-segments-routes)
      - ENDPOINT_URL (preferred for LocalStack)
      - AWS_REGION
    """

    table_name: str | None = None

    def _table(self) -> str:
        return self.table_name or os.getenv("ROUTES_TABLE") or "route-segments-routes"

    def get(self, route_id: str) -> Route | None:
        resp = dynamodb_client().get_item(
            TableName=self._table(),
            Key={"route_id": {"S": route_id}},
            ConsistentRead=True,
        )
        item = resp.get("Item")
        if not item:
            return None
        return route_from_document(json.loads(item["document"]["S"]))

    def save(self, route: Route) -> Route:
        expected = route.version
        route.version = expected + 1
        now_ms = int(time.time() * 1000)

        if expected == 0:
            condition = "attribute_not_exists(route_id)"
            values = None
        else:
            condition = "#v = :expected"
            values = {":expected": {"N": str(expected)}}

        kwargs = {
            "TableName": self._table(),
            "Item": {
                "route_id": {"S": route.id},
                "version": {"N": str(route.version)},
                "status": {"S": route.calculation_status.value},
                "updated_at_ms": {"N": str(now_ms)},
                "document": {"S": json.dumps(route_to_document(route))},
            },
            "ConditionExpression": condition,
        }
        if values is not None:
            kwargs["ExpressionAttributeNames"] = {"#v": "version"}
            kwargs["ExpressionAttributeValues"] = values

        try:
            dynamodb_client().put_item(**kwargs)
        except ClientError as exc:
            route.version = expected
            code = exc.response.get("Error", {}).get("Code")
            if code == "ConditionalCheckFailedException":
                raise ConcurrentModification(
                    f"Route {route.id} changed since version {expected}"
                ) from exc
            raise
        return route

    def delete(self, route_id: str) -> bool:
        resp = dynamodb_client().delete_item(
            TableName=self._table(),
            Key={"route_id": {"S": route_id}},
            ReturnValues="ALL_OLD",
        )
        return bool(resp.get("Attributes"))
