from aws_lambda_powertools import Logger

from .directory import MemberDirectory
from .errors import DutyError, InvalidRotationState
from .models import Member, RotationState, Selection
from .selection import ReselectionPolicy
from .state_store import RotationStateStore


logger = Logger(child=True)


class AssignmentTransaction:
    """Applies the counter and state consequences of a selection.

    Steps always run in the same order (decrement, increment, commit) and are
    never retried or rolled back. A failing step raises and leaves earlier
    steps applied.
    """

    def __init__(self, directory: MemberDirectory, state_store: RotationStateStore, policy: ReselectionPolicy):
        self._directory = directory
        self._state_store = state_store
        self._policy = policy

    def apply_initial(self, member: Member, state: RotationState) -> None:
        completed: list[str] = []
        try:
            self._directory.adjust_count(member.member_id, 1)
            completed.append("increment")
            self._state_store.put(state)
            completed.append("commit")
        except DutyError:
            logger.exception("Initial assignment partially applied", member_id=member.member_id, completed=completed)
            raise

        logger.info(
            "Initial assignment applied",
            member_id=member.member_id,
            assignment_date=state.assignment_date.isoformat(),
        )

    def apply_reselection(
        self,
        previous_member: Member | None,
        selection: Selection,
        state: RotationState | None,
    ) -> RotationState:
        if state is None:
            raise InvalidRotationState("No rotation state recorded for today")

        # Built up front so an unusable state fails before any counter moves.
        new_state = self._policy.next_state(state, selection)
        new_member_id = selection.member.member_id

        completed: list[str] = []
        try:
            if previous_member is None:
                logger.warning("Previous assignee left the directory, skipping decrement", expected=state.current_assignee)
            else:
                try:
                    self._directory.adjust_count(previous_member.member_id, -1)
                    completed.append("decrement")
                except InvalidRotationState:
                    # Count already at zero (e.g. reset by an operator) or member removed since the scan.
                    logger.warning("Duty count not decremented, skipping", member_id=previous_member.member_id)
                    completed.append("decrement-skipped")

            self._directory.adjust_count(new_member_id, 1)
            completed.append("increment")

            self._state_store.put(new_state, expected_assignee=state.current_assignee)
            completed.append("commit")
        except DutyError:
            logger.exception(
                "Reselection partially applied",
                previous_member_id=previous_member.member_id if previous_member else None,
                new_member_id=new_member_id,
                completed=completed,
            )
            raise

        logger.info(
            "Reselection applied",
            previous_member_id=previous_member.member_id if previous_member else None,
            new_member_id=new_member_id,
        )
        return new_state
