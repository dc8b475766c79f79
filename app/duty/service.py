from aws_lambda_powertools import Logger

from channels.base import Announcement, BaseChannel

from .calendar import BusinessCalendar
from .directory import MemberDirectory
from .errors import InvalidRotationState, NoMembersAvailable, StaleRotationState
from .models import Member
from .selection import ReselectionPolicy, select_initial
from .state_store import RotationStateStore
from .transaction import AssignmentTransaction


logger = Logger(child=True)


class DutyService:
    def __init__(
        self,
        directory: MemberDirectory,
        state_store: RotationStateStore,
        policy: ReselectionPolicy,
        transaction: AssignmentTransaction,
        calendar: BusinessCalendar,
        channel: BaseChannel,
    ):
        self._directory = directory
        self._state_store = state_store
        self._policy = policy
        self._transaction = transaction
        self._calendar = calendar
        self._channel = channel

    def run_daily(self, force: bool = False) -> dict:
        """Assign today's duty and announce it.

        Skips weekends, holidays and days that already have an assignment
        (unless ``force`` is set).
        """
        today = self._calendar.today()
        if not self._calendar.is_business_day(today):
            logger.info("Not a business day, skipping", date=today.isoformat())
            return {"status": "skipped", "reason": "not_business_day", "date": today.isoformat()}

        members = self._directory.list_members()
        if not members:
            logger.warning("No members found, cannot assign duty")
            self._channel.post_text("Could not assign today's duty: no members are registered.")
            raise NoMembersAvailable("No members are registered for the rotation")

        try:
            prior_state = self._state_store.get()
        except InvalidRotationState:
            logger.warning("Stored rotation state is unreadable, treating it as absent")
            prior_state = None

        if prior_state is not None and prior_state.assignment_date == today and not force:
            logger.info("Duty already assigned today", member_id=prior_state.current_assignee)
            return {
                "status": "skipped",
                "reason": "already_assigned",
                "date": today.isoformat(),
                "member_id": prior_state.current_assignee,
            }

        selected = select_initial(members, prior_state, today)
        logger.info("Initial duty member selected", member_id=selected.member_id, policy=self._policy.name)

        state = self._policy.initial_state(members, selected, today)
        self._transaction.apply_initial(selected, state)

        message_ts = self._channel.post(
            Announcement(assignee=selected, assignment_date=today, members=self._members_for_display())
        )

        return {
            "status": "assigned",
            "date": today.isoformat(),
            "member_id": selected.member_id,
            "message_ts": message_ts,
        }

    def reselect(self, trigger_member_id: str, channel_id: str, message_ts: str, user_id: str | None = None) -> dict:
        state = self._state_store.get()
        if state is None:
            raise InvalidRotationState("No duty has been assigned yet")

        if state.current_assignee != trigger_member_id:
            logger.warning(
                "Reselection requested from an outdated announcement",
                trigger_member_id=trigger_member_id,
                current_assignee=state.current_assignee,
            )
            raise StaleRotationState(
                f"{trigger_member_id} is no longer on duty (current: {state.current_assignee})"
            )

        members = self._directory.list_members()
        selection = self._policy.select_next(members, state, trigger_member_id)
        logger.info(
            "Next duty member selected",
            previous_member_id=trigger_member_id,
            new_member_id=selection.member.member_id,
            policy=self._policy.name,
        )

        previous_member = next((m for m in members if m.member_id == trigger_member_id), None)
        new_state = self._transaction.apply_reselection(previous_member, selection, state)

        self._channel.update(
            channel_id,
            message_ts,
            Announcement(
                assignee=selection.member,
                assignment_date=new_state.assignment_date,
                previous_assignee_id=trigger_member_id,
                reselected_by=user_id,
                members=self._members_for_display(),
            ),
        )

        return {
            "status": "reselected",
            "date": new_state.assignment_date.isoformat(),
            "previous_member_id": trigger_member_id,
            "member_id": selection.member.member_id,
        }

    def _members_for_display(self) -> list[Member]:
        # Re-read after the writes; only used to render counts in the message.
        return self._directory.list_members()
