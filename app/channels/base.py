from abc import ABC, abstractmethod
from datetime import date

from pydantic import BaseModel, Field

from duty.models import Member


def mention(member_id: str, display_name: str | None = None) -> str:
    if member_id.startswith(("U", "W")):
        return f"<@{member_id}>"
    return display_name or member_id


class Announcement(BaseModel):
    assignee: Member
    assignment_date: date
    previous_assignee_id: str | None = None
    reselected_by: str | None = None
    members: list[Member] = Field(default_factory=list)

    @property
    def is_reselection(self) -> bool:
        return self.previous_assignee_id is not None

    def members_for_display(self) -> list[Member]:
        return sorted(
            self.members,
            key=lambda m: (m.display_order is None, m.display_order or 0, m.member_id),
        )

    def format_for_text(self) -> str:
        assignee = mention(self.assignee.member_id, self.assignee.display_name)

        if self.is_reselection:
            by = f"<@{self.reselected_by}>" if self.reselected_by else "Someone"
            return (
                f":arrows_counterclockwise: {by} changed today's duty.\n"
                f"The new duty is {assignee}! (previously: {mention(self.previous_assignee_id)})"
            )

        return f":sunny: Today's ({self.assignment_date.isoformat()}) duty is {assignee}!\nThank you!"

    def format_member_counts(self) -> str:
        lines = ["*Current duty counts:*"]
        for member in self.members_for_display():
            lines.append(f"• {member.display_name}: {member.duty_count}")
        return "\n".join(lines)


class BaseChannel(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def post(self, announcement: Announcement) -> str:
        """Publish a new announcement and return its message reference."""

    @abstractmethod
    def update(self, channel_id: str, message_ts: str, announcement: Announcement) -> None:
        pass

    @abstractmethod
    def post_text(self, text: str) -> None:
        pass

    @abstractmethod
    def reply_in_thread(self, channel_id: str, message_ts: str, text: str) -> None:
        """Reply under an announcement without touching the announcement itself."""

    @abstractmethod
    def post_ephemeral(self, channel_id: str, user_id: str, text: str) -> None:
        pass
