import os
import sys
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

import pytest


# Disable X-Ray tracing for tests
os.environ["POWERTOOLS_TRACE_DISABLED"] = "true"

# Add app directory to path for imports
app_dir = Path(__file__).parent.parent / "app"
sys.path.insert(0, str(app_dir))


TODAY = date(2026, 10, 19)  # a Monday
YESTERDAY = date(2026, 10, 16)  # the Friday before


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def yesterday():
    return YESTERDAY


@pytest.fixture
def make_member():
    from duty.models import Member

    def _make(member_id: str, duty_count: int = 0, display_order=None, member_name=None):
        return Member(
            member_id=member_id,
            duty_count=duty_count,
            display_order=display_order,
            member_name=member_name,
        )

    return _make


@pytest.fixture
def members(make_member):
    return [make_member("A", 3), make_member("B", 1), make_member("C", 1)]


@pytest.fixture
def settings_config():
    return {
        "slack": {"bot_token": "xoxb-test", "signing_secret": "secret", "channel_id": "C123"},
        "dynamodb": {"members_table_name": "members", "state_table_name": "state", "state_id": "duty"},
        "rotation": {"timezone": "Asia/Tokyo", "policy": "fixed_rotation", "holidays": None},
    }


@pytest.fixture
def mock_lambda_context():
    context = MagicMock()
    context.function_name = "test-function"
    context.memory_limit_in_mb = 128
    context.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:test-function"
    context.aws_request_id = "test-request-id"
    return context
