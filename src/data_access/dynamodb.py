import asyncio
import logging
from typing import Any, Mapping, Sequence

from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from core.errors import PersistenceError
from data_access.gateways import Collection

logger = logging.getLogger(__name__)

# Global secondary indexes, keyed by the attribute they are partitioned on
DEFAULT_INDEXES: dict[Collection, dict[str, str]] = {
    Collection.CAMPAIGNS: {"student_id": "StudentIdIndex"},
    Collection.DONATIONS: {"campaign_id": "CampaignIdIndex"},
    Collection.VERIFICATION_REQUESTS: {"student_id": "StudentIdIndex"},
    Collection.PROFILES: {"role": "RoleIndex"},
}

SUBMIT_VERIFICATION_REQUEST = "submit_verification_request"


class DynamoPersistenceGateway:
    """
    One DynamoDB table per collection, named ``<prefix><collection>`` and
    keyed by ``id``. boto3 is blocking, so every call runs in a worker thread.
    """

    def __init__(self, resource, table_prefix: str,
                 indexes: dict[Collection, dict[str, str]] | None = None):
        self.resource = resource
        self.table_prefix = table_prefix
        self.indexes = DEFAULT_INDEXES if indexes is None else indexes
        self._serializer = TypeSerializer()

    def table_name(self, collection: Collection) -> str:
        return f"{self.table_prefix}{Collection(collection).value}"

    def _table(self, collection: Collection):
        return self.resource.Table(self.table_name(collection))

    async def read(self, collection: Collection, filters: Mapping[str, Any]) -> list[dict]:
        return await asyncio.to_thread(self._read, collection, dict(filters))

    async def read_one(self, collection: Collection, record_id: str) -> dict | None:
        items = await asyncio.to_thread(self._read, collection, {"id": record_id})
        return items[0] if items else None

    async def insert(self, collection: Collection, records: dict | Sequence[dict]) -> list[dict]:
        items = [records] if isinstance(records, dict) else list(records)
        return await asyncio.to_thread(self._insert, collection, items)

    async def update(self, collection: Collection, patch: Mapping[str, Any],
                     filters: Mapping[str, Any]) -> int:
        return await asyncio.to_thread(self._update, collection, dict(patch), dict(filters))

    async def rpc(self, name: str, args: Mapping[str, Any]) -> Any:
        if name == SUBMIT_VERIFICATION_REQUEST:
            return await asyncio.to_thread(self._submit_verification_request, dict(args))
        raise PersistenceError(f"Unknown procedure {name}", operation="rpc")

    def _read(self, collection: Collection, filters: dict) -> list[dict]:
        table = self._table(collection)
        try:
            if set(filters) == {"id"}:
                response = table.get_item(Key={"id": filters["id"]})
                item = response.get("Item")
                return [item] if item else []

            params: dict[str, Any] = {}
            index_field = next(
                (f for f in filters if f in self.indexes.get(collection, {})), None
            )
            rest = {k: v for k, v in filters.items() if k != index_field}
            if rest:
                params["FilterExpression"] = _attr_conditions(rest)

            if index_field:
                params["IndexName"] = self.indexes[collection][index_field]
                params["KeyConditionExpression"] = Key(index_field).eq(filters[index_field])
                return _paginate(table.query, params)
            return _paginate(table.scan, params)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error reading {collection}: {e}",
                         extra={"operation": "read", "entity_id": filters.get("id")})
            raise PersistenceError(f"Read from {collection} failed",
                                   operation="read", entity_id=filters.get("id")) from e

    def _insert(self, collection: Collection, items: list[dict]) -> list[dict]:
        table = self._table(collection)
        try:
            if len(items) == 1:
                table.put_item(Item=items[0])
            else:
                with table.batch_writer() as batch:
                    for item in items:
                        batch.put_item(Item=item)
            return items
        except (ClientError, BotoCoreError) as e:
            entity_id = items[0].get("id") if items else None
            logger.error(f"Error inserting into {collection}: {e}",
                         extra={"operation": "insert", "entity_id": entity_id})
            raise PersistenceError(f"Insert into {collection} failed",
                                   operation="insert", entity_id=entity_id) from e

    def _update(self, collection: Collection, patch: dict, filters: dict) -> int:
        table = self._table(collection)
        rows = self._read(collection, filters)

        names = {"#id": "id"}
        values = {}
        set_parts = []
        for i, (field, value) in enumerate(patch.items()):
            names[f"#p{i}"] = field
            values[f":p{i}"] = value
            set_parts.append(f"#p{i} = :p{i}")

        # The filter is re-checked per row so a row changed since the read is left alone
        conditions = ["attribute_exists(#id)"]
        for i, (field, value) in enumerate(filters.items()):
            names[f"#c{i}"] = field
            values[f":c{i}"] = value
            conditions.append(f"#c{i} = :c{i}")

        updated = 0
        for row in rows:
            try:
                table.update_item(
                    Key={"id": row["id"]},
                    UpdateExpression="SET " + ", ".join(set_parts),
                    ConditionExpression=" AND ".join(conditions),
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values,
                )
                updated += 1
            except (ClientError, BotoCoreError) as e:
                if _condition_failed(e):
                    logger.info(f"Idempotency check: {collection} {row['id']} no longer matches {filters}.")
                    continue
                logger.error(f"Error updating {collection}: {e}",
                             extra={"operation": "update", "entity_id": row["id"]})
                raise PersistenceError(f"Update of {collection} failed",
                                       operation="update", entity_id=row["id"]) from e
        return updated

    def _submit_verification_request(self, args: dict) -> list[str]:
        student_id = args["student_id"]
        requests = args["requests"]
        client = self.resource.meta.client

        actions = [
            {
                "Put": {
                    "TableName": self.table_name(Collection.VERIFICATION_REQUESTS),
                    "Item": self._serialize(request),
                }
            }
            for request in requests
        ]
        actions.append({
            "Update": {
                "TableName": self.table_name(Collection.STUDENTS),
                "Key": self._serialize({"id": student_id}),
                "UpdateExpression": "SET #vs = :vs",
                "ConditionExpression": "attribute_exists(#id)",
                "ExpressionAttributeNames": {"#vs": "verification_status", "#id": "id"},
                "ExpressionAttributeValues": self._serialize({":vs": "pending"}),
            }
        })

        try:
            client.transact_write_items(TransactItems=actions)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error submitting verification request: {e}",
                         extra={"operation": SUBMIT_VERIFICATION_REQUEST, "entity_id": student_id})
            raise PersistenceError("Verification request submission failed",
                                   operation=SUBMIT_VERIFICATION_REQUEST,
                                   entity_id=student_id) from e
        return [request["id"] for request in requests]

    def _serialize(self, item: dict) -> dict:
        return {k: self._serializer.serialize(v) for k, v in item.items()}


def _condition_failed(error: Exception) -> bool:
    return (isinstance(error, ClientError)
            and error.response['Error']['Code'] == 'ConditionalCheckFailedException')


def _attr_conditions(filters: dict):
    condition = None
    for field, value in filters.items():
        clause = Attr(field).eq(value)
        condition = clause if condition is None else condition & clause
    return condition


def _paginate(operation, params: dict) -> list[dict]:
    items = []
    while True:
        response = operation(**params)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        params = {**params, "ExclusiveStartKey": last_key}
