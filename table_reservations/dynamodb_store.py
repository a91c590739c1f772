"""
DynamoDB-backed booking store.

Tables are keyed by numeric ``id``, reservations by string ``id``. A third
table holds one lock item per (table number, date) slot whose ``version``
attribute is bumped in the same transaction that writes a reservation.
"""

from decimal import Decimal
import logging
from typing import Any, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

from .errors import ConcurrentWriteError
from .records import ReservationRecord, TableRecord
from .stores import BookingStore, slot_key

logger = logging.getLogger(__name__)

LOCK_KEY_ATTRIBUTE = "lockKey"

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def serialize_item(data: dict) -> dict:
    """Convert a plain dict to DynamoDB attribute values."""
    return {key: _serializer.serialize(_to_dynamo_value(value)) for key, value in data.items()}


def deserialize_item(item: dict) -> dict:
    """Convert DynamoDB attribute values back to plain Python values."""
    return {key: _deserializer.deserialize(value) for key, value in item.items()}


def _to_dynamo_value(value: Any) -> Any:
    # TypeSerializer rejects float; DynamoDB numbers go through Decimal.
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class DynamoDBBookingStore(BookingStore):
    """Booking store on top of a low-level boto3 ``dynamodb`` client."""

    def __init__(self, client, tables_table: str, reservations_table: str, locks_table: str):
        self.client = client
        self.tables_table = tables_table
        self.reservations_table = reservations_table
        self.locks_table = locks_table

    def _scan(self, table_name: str) -> list[dict]:
        """
        Read every item of ``table_name``, following pagination.

        Scans are strongly consistent so that a reservation committed before
        its slot version was read is always visible to the conflict check.
        """
        paginator = self.client.get_paginator("scan")
        items = []
        for page in paginator.paginate(TableName=table_name, ConsistentRead=True):
            items.extend(deserialize_item(item) for item in page.get("Items", []))
        logger.debug("Scanned %d items from %s", len(items), table_name)
        return items

    def scan_tables(self) -> list[TableRecord]:
        return [TableRecord.from_dict(item) for item in self._scan(self.tables_table)]

    def get_table(self, table_id: int) -> Optional[TableRecord]:
        response = self.client.get_item(
            TableName=self.tables_table,
            Key={"id": {"N": str(table_id)}},
        )
        item = response.get("Item")
        if not item:
            return None
        return TableRecord.from_dict(deserialize_item(item))

    def put_table(self, table: TableRecord) -> None:
        self.client.put_item(
            TableName=self.tables_table,
            Item=serialize_item(table.to_dict()),
        )

    def scan_reservations(self) -> list[ReservationRecord]:
        return [ReservationRecord.from_dict(item) for item in self._scan(self.reservations_table)]

    def slot_version(self, table_number: int, date: str) -> int:
        response = self.client.get_item(
            TableName=self.locks_table,
            Key={LOCK_KEY_ATTRIBUTE: {"S": slot_key(table_number, date)}},
            ConsistentRead=True,
        )
        item = response.get("Item")
        if not item:
            return 0
        return int(deserialize_item(item).get("version", 0))

    def put_reservation(self, reservation: ReservationRecord, expected_version: int) -> None:
        """
        Write the reservation and bump its slot version in one transaction.

        Raises:
            ConcurrentWriteError: the slot version no longer matches
        """
        values = {":next": {"N": str(expected_version + 1)}}
        if expected_version == 0:
            condition = f"attribute_not_exists({LOCK_KEY_ATTRIBUTE})"
        else:
            condition = "#version = :expected"
            values[":expected"] = {"N": str(expected_version)}

        key = slot_key(reservation.table_number, reservation.date)
        try:
            self.client.transact_write_items(
                TransactItems=[
                    {
                        "Update": {
                            "TableName": self.locks_table,
                            "Key": {LOCK_KEY_ATTRIBUTE: {"S": key}},
                            "UpdateExpression": "SET #version = :next",
                            "ConditionExpression": condition,
                            "ExpressionAttributeNames": {"#version": "version"},
                            "ExpressionAttributeValues": values,
                        }
                    },
                    {
                        "Put": {
                            "TableName": self.reservations_table,
                            "Item": serialize_item(reservation.to_dict()),
                            "ConditionExpression": "attribute_not_exists(id)",
                        }
                    },
                ]
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "TransactionCanceledException":
                raise ConcurrentWriteError(f"Slot {key} changed since version {expected_version}") from e
            raise
