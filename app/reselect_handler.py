import base64
import binascii
import json
from urllib.parse import parse_qs

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import BaseModel, Field, ValidationError

from channels import RESELECT_ACTION_ID
from container import Container
from duty.errors import AuthenticationFailed, ConfigurationMissing, RotationStateConflict, StaleRotationState
from duty.signature import verify_slack_request


logger = Logger()
tracer = Tracer()

container = Container()


class InteractionAction(BaseModel):
    action_id: str = ""
    value: str = ""

    def current_member_id(self) -> str | None:
        try:
            value = json.loads(self.value or "{}")
        except json.JSONDecodeError:
            return None
        return value.get("current_member_id") if isinstance(value, dict) else None


class InteractionPayload(BaseModel):
    type: str = ""
    actions: list[InteractionAction] = Field(default_factory=list)
    container: dict = Field(default_factory=dict)
    user: dict = Field(default_factory=dict)

    @property
    def channel_id(self) -> str | None:
        return self.container.get("channel_id")

    @property
    def message_ts(self) -> str | None:
        return self.container.get("message_ts")

    @property
    def user_id(self) -> str | None:
        return self.user.get("id")


def ack(message: str) -> dict:
    return {"statusCode": 200, "body": message}


def get_header(event: dict, name: str) -> str | None:
    headers = event.get("headers") or {}
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def get_raw_body(event: dict) -> str:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return body


def parse_interaction(body: str) -> InteractionPayload:
    payload_values = parse_qs(body).get("payload")
    if not payload_values:
        raise ValueError("payload field not found in body")
    return InteractionPayload.model_validate(json.loads(payload_values[0]))


def notify_failure(payload: InteractionPayload, error: Exception) -> None:
    """Tell people about a failed reselection while leaving the announcement and its button intact."""
    if not payload.channel_id or not payload.message_ts:
        return
    try:
        channel = container.slack_channel()
        if isinstance(error, (StaleRotationState, RotationStateConflict)):
            # Someone else already changed the duty; only the clicker needs to know.
            if payload.user_id:
                channel.post_ephemeral(
                    payload.channel_id,
                    payload.user_id,
                    "The duty was already changed. Please use the latest announcement.",
                )
            return
        channel.reply_in_thread(
            payload.channel_id, payload.message_ts, f"An error occurred while changing duty: {error}"
        )
    except Exception:
        logger.exception("Failed to report reselection failure to Slack")


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """Handles the "change duty" button from Slack, delivered through API Gateway."""
    try:
        settings = container.settings()
    except ConfigurationMissing:
        logger.exception("Configuration is incomplete")
        raise

    try:
        body = get_raw_body(event)
    except (binascii.Error, UnicodeDecodeError):
        logger.error("Request body could not be decoded")
        return {"statusCode": 403, "body": "Invalid signature"}

    try:
        verify_slack_request(
            settings.slack_signing_secret,
            get_header(event, "X-Slack-Signature"),
            get_header(event, "X-Slack-Request-Timestamp"),
            body,
        )
    except AuthenticationFailed:
        logger.error("Invalid Slack signature")
        return {"statusCode": 403, "body": "Invalid signature"}

    try:
        payload = parse_interaction(body)
    except (ValueError, ValidationError) as e:
        logger.warning("Could not parse interaction payload", extra={"error": str(e)})
        return ack("OK (Unreadable payload)")

    if payload.type != "block_actions" or not payload.actions:
        logger.info("Not a block_actions payload, acknowledging", payload_type=payload.type)
        return ack("OK (Not a target action)")

    action = payload.actions[0]
    if action.action_id != RESELECT_ACTION_ID:
        logger.info("Ignoring action", action_id=action.action_id)
        return ack("OK (Ignoring action)")

    current_member_id = action.current_member_id()
    if not current_member_id or not payload.channel_id or not payload.message_ts:
        logger.error("Missing current_member_id, channel_id or message_ts in payload")
        return ack("OK (Missing info in payload)")

    logger.info(
        "Reselection requested",
        current_member_id=current_member_id,
        channel_id=payload.channel_id,
        message_ts=payload.message_ts,
        user_id=payload.user_id,
    )

    try:
        result = container.duty_service().reselect(
            trigger_member_id=current_member_id,
            channel_id=payload.channel_id,
            message_ts=payload.message_ts,
            user_id=payload.user_id,
        )
    except Exception as e:
        # Slack must still get a 200 here, otherwise it redelivers the click.
        logger.exception("Reselection failed")
        notify_failure(payload, e)
        return ack("OK (Reselection failed)")

    logger.info("Reselection complete", result=result)
    return ack("OK (Reselection processed)")
