import json
from typing import Any

import requests
from aws_lambda_powertools import Logger

from duty.errors import DownstreamUnavailable

from .base import Announcement, BaseChannel


logger = Logger(child=True)

RESELECT_ACTION_ID = "reselect_duty_action"
DUTY_ACTIONS_BLOCK_ID = "duty_actions"


class SlackChannel(BaseChannel):
    SLACK_API_BASE = "https://slack.com/api/"

    def __init__(self, bot_token: str, channel_id: str, timeout: float = 10):
        self._bot_token = bot_token
        self._channel_id = channel_id
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "slack"

    def post(self, announcement: Announcement) -> str:
        result = self._call(
            "chat.postMessage",
            {"channel": self._channel_id, "text": announcement.format_for_text(), "blocks": self._build_blocks(announcement)},
        )
        logger.info("Slack announcement posted", extra={"ts": result.get("ts")})
        return result.get("ts", "")

    def update(self, channel_id: str, message_ts: str, announcement: Announcement) -> None:
        self._call(
            "chat.update",
            {
                "channel": channel_id,
                "ts": message_ts,
                "text": announcement.format_for_text(),
                "blocks": self._build_blocks(announcement),
            },
        )
        logger.info("Slack announcement updated", extra={"ts": message_ts, "assignee": announcement.assignee.member_id})

    def post_text(self, text: str) -> None:
        self._call("chat.postMessage", {"channel": self._channel_id, "text": text})

    def reply_in_thread(self, channel_id: str, message_ts: str, text: str) -> None:
        self._call("chat.postMessage", {"channel": channel_id, "thread_ts": message_ts, "text": text})

    def post_ephemeral(self, channel_id: str, user_id: str, text: str) -> None:
        self._call("chat.postEphemeral", {"channel": channel_id, "user": user_id, "text": text})

    def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = requests.post(
                f"{self.SLACK_API_BASE}{method}",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self._bot_token}",
                    "Content-Type": "application/json; charset=utf-8",
                },
                timeout=self._timeout,
            )
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Failed to call Slack API", extra={"method": method, "error": str(e)})
            raise DownstreamUnavailable(f"Slack {method} failed") from e

        if not result.get("ok"):
            logger.error("Slack API error", extra={"method": method, "error": result.get("error")})
            raise DownstreamUnavailable(f"Slack {method} failed: {result.get('error', 'unknown_error')}")

        return result

    def _build_blocks(self, announcement: Announcement) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = [
            {"type": "section", "text": {"type": "mrkdwn", "text": announcement.format_for_text()}},
            {
                "type": "actions",
                "block_id": DUTY_ACTIONS_BLOCK_ID,
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "Change duty", "emoji": True},
                        "style": "danger",
                        "action_id": RESELECT_ACTION_ID,
                        "value": json.dumps({"current_member_id": announcement.assignee.member_id}),
                    }
                ],
            },
        ]

        if announcement.members:
            blocks.append({"type": "divider"})
            blocks.append(
                {"type": "context", "elements": [{"type": "mrkdwn", "text": announcement.format_member_counts()}]}
            )

        return blocks
