from .base import Announcement, BaseChannel, mention
from .slack import RESELECT_ACTION_ID, SlackChannel


__all__ = [
    "Announcement",
    "BaseChannel",
    "RESELECT_ACTION_ID",
    "SlackChannel",
    "mention",
]
