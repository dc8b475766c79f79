import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError

from .errors import DownstreamUnavailable, RotationStateConflict
from .models import RotationState, parse_state


logger = Logger(child=True)

_ASSIGNEE_ATTRIBUTE = {
    "pointer": "lastAssignedMemberId",
    "list_cursor": "currentAssignedMemberId",
}


class RotationStateStore:
    """The single rotation state record, keyed by ``stateId``."""

    def __init__(self, table_name: str, state_id: str, dynamodb=None):
        self._table_name = table_name
        self._state_id = state_id
        self._table = (dynamodb or boto3.resource("dynamodb")).Table(table_name)

    def get(self) -> RotationState | None:
        try:
            response = self._table.get_item(Key={"stateId": self._state_id})
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to read rotation state", extra={"table": self._table_name, "error": str(e)})
            raise DownstreamUnavailable(f"Could not read rotation state from {self._table_name}") from e

        item = response.get("Item")
        if not item:
            logger.info("No rotation state recorded yet", state_id=self._state_id)
            return None

        state = parse_state(item)
        logger.info("Rotation state retrieved", kind=state.kind, current_assignee=state.current_assignee)
        return state

    def put(self, state: RotationState, expected_assignee: str | None = None) -> None:
        """Overwrite the record.

        With ``expected_assignee`` the write only succeeds while the stored
        record still names that member as the current assignee.
        """
        kwargs: dict = {"Item": {"stateId": self._state_id, **state.to_item()}}
        if expected_assignee is not None:
            kwargs["ConditionExpression"] = "#assignee = :expected"
            kwargs["ExpressionAttributeNames"] = {"#assignee": _ASSIGNEE_ATTRIBUTE[state.kind]}
            kwargs["ExpressionAttributeValues"] = {":expected": expected_assignee}

        try:
            self._table.put_item(**kwargs)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ConditionalCheckFailedException":
                logger.warning("Rotation state changed concurrently", expected_assignee=expected_assignee)
                raise RotationStateConflict("Rotation state was changed by another request") from e
            logger.error("Failed to write rotation state", extra={"error_code": error_code})
            raise DownstreamUnavailable(f"Could not write rotation state to {self._table_name}") from e
        except BotoCoreError as e:
            logger.error("Failed to write rotation state", extra={"error": str(e)})
            raise DownstreamUnavailable(f"Could not write rotation state to {self._table_name}") from e

        logger.info("Rotation state written", kind=state.kind, current_assignee=state.current_assignee)
