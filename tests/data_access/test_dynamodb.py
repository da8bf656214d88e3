"""Tests: DynamoPersistenceGateway against a mocked boto3 resource.

Design Decisions:
    - MagicMock stands in for the Table resource; assertions are on the
      request parameters boto3 would send
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from core.errors import PersistenceError
from data_access.dynamodb import SUBMIT_VERIFICATION_REQUEST, DynamoPersistenceGateway
from data_access.gateways import Collection
from models.notification import NotificationType, UserRole
from services.notification_service import Audience, NotificationPlan, NotificationService


# -- Helpers -------------------------------------------------------------------

def _client_error(code, operation="UpdateItem"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def table():
    return MagicMock()


@pytest.fixture
def gateway(table):
    resource = MagicMock()
    resource.Table.return_value = table
    return DynamoPersistenceGateway(resource, table_prefix="unifund-test-")


# ==============================================================================
# Reads
# ==============================================================================


async def test_read_one_uses_get_item(gateway, table):
    table.get_item.return_value = {"Item": {"id": "c1", "status": "pending"}}

    item = await gateway.read_one(Collection.CAMPAIGNS, "c1")

    assert item == {"id": "c1", "status": "pending"}
    table.get_item.assert_called_once_with(Key={"id": "c1"})
    gateway.resource.Table.assert_called_with("unifund-test-campaigns")


async def test_read_one_missing(gateway, table):
    table.get_item.return_value = {}

    assert await gateway.read_one(Collection.CAMPAIGNS, "nope") is None


async def test_indexed_read_queries_index_and_pages(gateway, table):
    table.query.side_effect = [
        {"Items": [{"id": "a1"}], "LastEvaluatedKey": {"id": "a1"}},
        {"Items": [{"id": "a2"}]},
    ]

    items = await gateway.read(Collection.PROFILES, {"role": "admin"})

    assert [i["id"] for i in items] == ["a1", "a2"]
    first_call = table.query.call_args_list[0].kwargs
    assert first_call["IndexName"] == "RoleIndex"
    assert "FilterExpression" not in first_call
    assert table.query.call_args_list[1].kwargs["ExclusiveStartKey"] == {"id": "a1"}


async def test_unindexed_read_scans(gateway, table):
    table.scan.return_value = {"Items": []}

    await gateway.read(Collection.NOTIFICATIONS, {"user_id": "u1"})

    assert "FilterExpression" in table.scan.call_args.kwargs
    table.query.assert_not_called()


async def test_read_error_becomes_persistence_error(gateway, table):
    table.get_item.side_effect = _client_error("ProvisionedThroughputExceededException", "GetItem")

    with pytest.raises(PersistenceError):
        await gateway.read_one(Collection.CAMPAIGNS, "c1")


# ==============================================================================
# Writes
# ==============================================================================


async def test_single_insert_puts_item(gateway, table):
    await gateway.insert(Collection.DONATIONS, {"id": "d1"})

    table.put_item.assert_called_once_with(Item={"id": "d1"})


async def test_multi_insert_uses_batch_writer(gateway, table):
    batch = table.batch_writer.return_value.__enter__.return_value

    records = await gateway.insert(Collection.NOTIFICATIONS, [{"id": "n1"}, {"id": "n2"}])

    assert len(records) == 2
    assert batch.put_item.call_count == 2
    table.put_item.assert_not_called()


async def test_insert_error(gateway, table):
    table.put_item.side_effect = _client_error("ValidationException", "PutItem")

    with pytest.raises(PersistenceError) as exc:
        await gateway.insert(Collection.DONATIONS, {"id": "d1"})
    assert exc.value.entity_id == "d1"


async def test_conditional_update_guards_each_row(gateway, table):
    """Every matched row is updated with the filter repeated as a condition."""
    table.query.return_value = {"Items": [{"id": "vr1"}, {"id": "vr2"}]}

    updated = await gateway.update(
        Collection.VERIFICATION_REQUESTS,
        {"status": "approved", "reviewed_at": "2026-03-01T09:30:00+00:00"},
        {"student_id": "s1", "status": "pending"},
    )

    assert updated == 2
    assert table.query.call_args.kwargs["IndexName"] == "StudentIdIndex"
    call = table.update_item.call_args_list[0].kwargs
    assert call["Key"] == {"id": "vr1"}
    assert call["UpdateExpression"] == "SET #p0 = :p0, #p1 = :p1"
    assert call["ConditionExpression"] == "attribute_exists(#id) AND #c0 = :c0 AND #c1 = :c1"
    assert call["ExpressionAttributeNames"]["#c1"] == "status"
    assert call["ExpressionAttributeValues"][":c1"] == "pending"
    assert call["ExpressionAttributeValues"][":p0"] == "approved"


async def test_rows_reviewed_concurrently_are_skipped(gateway, table):
    table.query.return_value = {"Items": [{"id": "vr1"}, {"id": "vr2"}]}
    table.update_item.side_effect = [_client_error("ConditionalCheckFailedException"), {}]

    updated = await gateway.update(Collection.VERIFICATION_REQUESTS,
                                   {"status": "approved"}, {"student_id": "s1", "status": "pending"})

    assert updated == 1


async def test_update_error(gateway, table):
    table.get_item.return_value = {"Item": {"id": "c1"}}
    table.update_item.side_effect = _client_error("InternalServerError")

    with pytest.raises(PersistenceError):
        await gateway.update(Collection.CAMPAIGNS, {"status": "active"}, {"id": "c1"})


# ==============================================================================
# Procedures
# ==============================================================================


async def test_submit_verification_request_is_one_transaction(gateway):
    client = gateway.resource.meta.client

    ids = await gateway.rpc(SUBMIT_VERIFICATION_REQUEST, {
        "student_id": "s1",
        "requests": [{"id": "vr1", "status": "pending"}, {"id": "vr2", "status": "pending"}],
    })

    assert ids == ["vr1", "vr2"]
    actions = client.transact_write_items.call_args.kwargs["TransactItems"]
    assert [next(iter(a)) for a in actions] == ["Put", "Put", "Update"]
    assert actions[0]["Put"]["TableName"] == "unifund-test-verification_requests"
    assert actions[0]["Put"]["Item"]["id"] == {"S": "vr1"}
    assert actions[2]["Update"]["Key"] == {"id": {"S": "s1"}}


async def test_unknown_procedure(gateway):
    with pytest.raises(PersistenceError):
        await gateway.rpc("drop_everything", {})


# ==============================================================================
# Connection failures
# ==============================================================================


def _unreachable():
    return EndpointConnectionError(endpoint_url="https://dynamodb.af-south-1.amazonaws.com")


async def test_unreachable_endpoint_on_read(gateway, table):
    table.query.side_effect = _unreachable()

    with pytest.raises(PersistenceError):
        await gateway.read(Collection.PROFILES, {"role": "admin"})


async def test_unreachable_endpoint_on_insert(gateway, table):
    table.put_item.side_effect = _unreachable()

    with pytest.raises(PersistenceError):
        await gateway.insert(Collection.DONATIONS, {"id": "d1"})


async def test_unreachable_endpoint_on_update(gateway, table):
    table.get_item.return_value = {"Item": {"id": "c1"}}
    table.update_item.side_effect = _unreachable()

    with pytest.raises(PersistenceError):
        await gateway.update(Collection.CAMPAIGNS, {"status": "active"}, {"id": "c1"})


async def test_unreachable_endpoint_on_procedure(gateway):
    gateway.resource.meta.client.transact_write_items.side_effect = _unreachable()

    with pytest.raises(PersistenceError):
        await gateway.rpc(SUBMIT_VERIFICATION_REQUEST, {"student_id": "s1", "requests": []})


async def test_notification_fan_out_survives_unreachable_endpoint(gateway, table):
    """A dropped connection on the notification write is a warning, not a failure."""
    table.query.return_value = {"Items": [{"id": "a1"}, {"id": "a2"}]}
    table.put_item.side_effect = _unreachable()
    table.batch_writer.return_value.__enter__.return_value.put_item.side_effect = _unreachable()
    plans = [
        NotificationPlan(audience=Audience.direct("s1"), title="New Donation Received",
                         message="R250", type=NotificationType.DONATION_RECEIVED),
        NotificationPlan(audience=Audience.of_role(UserRole.ADMIN), title="New Pending Donation",
                         message="R250", type=NotificationType.VERIFICATION_UPDATE),
    ]

    warnings = await NotificationService(gateway).dispatch(plans)

    assert len(warnings) == 2
