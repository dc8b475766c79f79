import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError

from .errors import DownstreamUnavailable, InvalidRotationState
from .models import Member


logger = Logger(child=True)


class MemberDirectory:
    """Rotation participants stored in the members table, keyed by ``memberId``."""

    def __init__(self, table_name: str, dynamodb=None):
        self._table_name = table_name
        self._table = (dynamodb or boto3.resource("dynamodb")).Table(table_name)

    def list_members(self) -> list[Member]:
        items: list[dict] = []
        scan_kwargs: dict = {}

        try:
            while True:
                response = self._table.scan(**scan_kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to scan members", extra={"table": self._table_name, "error": str(e)})
            raise DownstreamUnavailable(f"Could not read members from {self._table_name}") from e

        members = [Member.from_item(item) for item in items if item.get("memberId")]
        logger.info("Scanned members", extra={"table": self._table_name, "count": len(members)})
        return members

    def adjust_count(self, member_id: str, delta: int) -> int:
        """Add ``delta`` to a member's duty count and return the new value.

        The member must already exist, and a decrement never takes the count
        below zero.
        """
        condition = "attribute_exists(memberId)"
        values: dict = {":delta": delta}
        if delta < 0:
            condition += " AND dutyCount >= :floor"
            values[":floor"] = -delta

        try:
            response = self._table.update_item(
                Key={"memberId": member_id},
                UpdateExpression="ADD dutyCount :delta",
                ConditionExpression=condition,
                ExpressionAttributeValues=values,
                ReturnValues="UPDATED_NEW",
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ConditionalCheckFailedException":
                logger.warning("Duty count update rejected", extra={"member_id": member_id, "delta": delta})
                raise InvalidRotationState(f"Cannot adjust duty count of {member_id} by {delta}") from e
            logger.error("Failed to update duty count", extra={"member_id": member_id, "error_code": error_code})
            raise DownstreamUnavailable(f"Could not update duty count of {member_id}") from e
        except BotoCoreError as e:
            logger.error("Failed to update duty count", extra={"member_id": member_id, "error": str(e)})
            raise DownstreamUnavailable(f"Could not update duty count of {member_id}") from e

        new_count = int(response.get("Attributes", {}).get("dutyCount", 0))
        logger.info("Adjusted duty count", extra={"member_id": member_id, "delta": delta, "duty_count": new_count})
        return new_count
