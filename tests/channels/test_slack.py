import json
from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import requests

from channels.base import Announcement
from channels.slack import RESELECT_ACTION_ID, SlackChannel
from duty.errors import DownstreamUnavailable
from duty.models import Member


@pytest.fixture
def announcement():
    return Announcement(
        assignee=Member(member_id="U02", member_name="Bob"),
        assignment_date=date(2026, 10, 19),
        members=[Member(member_id="U01", duty_count=3), Member(member_id="U02", duty_count=2)],
    )


@pytest.fixture
def channel():
    return SlackChannel(bot_token="xoxb-test", channel_id="C123")


def slack_response(body: dict) -> MagicMock:
    response = MagicMock()
    response.json.return_value = body
    response.raise_for_status = MagicMock()
    return response


class TestSlackChannel:
    def test_name(self, channel):
        assert channel.name == "slack"

    @patch("channels.slack.requests.post")
    def test_post_returns_message_ts(self, mock_post, channel, announcement):
        mock_post.return_value = slack_response({"ok": True, "ts": "1700000000.000100"})

        assert channel.post(announcement) == "1700000000.000100"

        url = mock_post.call_args.args[0]
        kwargs = mock_post.call_args.kwargs
        assert url == "https://slack.com/api/chat.postMessage"
        assert kwargs["headers"]["Authorization"] == "Bearer xoxb-test"
        assert kwargs["json"]["channel"] == "C123"
        assert kwargs["timeout"] == 10

    @patch("channels.slack.requests.post")
    def test_update_targets_original_message(self, mock_post, channel, announcement):
        mock_post.return_value = slack_response({"ok": True})

        channel.update("C999", "1700000000.000100", announcement)

        assert mock_post.call_args.args[0] == "https://slack.com/api/chat.update"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["channel"] == "C999"
        assert payload["ts"] == "1700000000.000100"

    @patch("channels.slack.requests.post")
    def test_api_error(self, mock_post, channel, announcement):
        mock_post.return_value = slack_response({"ok": False, "error": "channel_not_found"})

        with pytest.raises(DownstreamUnavailable, match="channel_not_found"):
            channel.post(announcement)

    @patch("channels.slack.requests.post")
    def test_request_exception(self, mock_post, channel):
        mock_post.side_effect = requests.RequestException("Connection error")

        with pytest.raises(DownstreamUnavailable):
            channel.post_text("hello")

    @patch("channels.slack.requests.post")
    def test_reply_in_thread(self, mock_post, channel):
        mock_post.return_value = slack_response({"ok": True})

        channel.reply_in_thread("C123", "1.0", "error")

        assert mock_post.call_args.args[0] == "https://slack.com/api/chat.postMessage"
        assert mock_post.call_args.kwargs["json"] == {"channel": "C123", "thread_ts": "1.0", "text": "error"}

    @patch("channels.slack.requests.post")
    def test_post_ephemeral(self, mock_post, channel):
        mock_post.return_value = slack_response({"ok": True})

        channel.post_ephemeral("C123", "U99", "already changed")

        assert mock_post.call_args.args[0] == "https://slack.com/api/chat.postEphemeral"
        assert mock_post.call_args.kwargs["json"] == {"channel": "C123", "user": "U99", "text": "already changed"}

    def test_button_carries_current_assignee(self, channel, announcement):
        blocks = channel._build_blocks(announcement)

        actions = next(b for b in blocks if b["type"] == "actions")
        button = actions["elements"][0]
        assert button["action_id"] == RESELECT_ACTION_ID
        assert json.loads(button["value"]) == {"current_member_id": "U02"}

    def test_member_counts_block(self, channel, announcement):
        blocks = channel._build_blocks(announcement)

        assert blocks[-2] == {"type": "divider"}
        assert blocks[-1]["type"] == "context"

    def test_no_member_block_without_members(self, channel):
        announcement = Announcement(assignee=Member(member_id="U02"), assignment_date=date(2026, 10, 19))

        assert [b["type"] for b in channel._build_blocks(announcement)] == ["section", "actions"]
