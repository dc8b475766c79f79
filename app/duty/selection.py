import math
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import date

from aws_lambda_powertools import Logger

from .errors import InvalidRotationState, NoMembersAvailable, NotEnoughMembers
from .models import ListCursorState, Member, PointerState, RotationState, Selection


logger = Logger(child=True)


def ranking_key(member: Member) -> tuple:
    """Sort key: duty count, then display order (missing last), then member id."""
    order = member.display_order if member.display_order is not None else math.inf
    return (member.duty_count, order, member.member_id)


def rank(members: Iterable[Member]) -> list[Member]:
    return sorted(members, key=ranking_key)


def _first_ranked(members: Sequence[Member], excluded: set[str]) -> Member | None:
    candidates = [m for m in members if m.member_id not in excluded]
    if not candidates:
        return None
    return min(candidates, key=ranking_key)


def select_initial(members: Sequence[Member], prior_state: RotationState | None, today: date) -> Member:
    """Pick the first assignee of the day.

    The previous day's assignee is skipped unless nobody else is left. A prior
    state that already belongs to ``today`` (a forced re-run) excludes nobody.
    """
    if not members:
        raise NoMembersAvailable("No members are registered for the rotation")

    excluded: set[str] = set()
    if prior_state is not None and prior_state.assignment_date != today:
        excluded.add(prior_state.current_assignee)

    logger.info("Selecting initial member", excluded=sorted(excluded))

    selected = _first_ranked(members, excluded)
    if selected is None:
        logger.warning("No candidates after exclusion, considering all members")
        selected = _first_ranked(members, set())

    return selected


class ReselectionPolicy(ABC):
    """Strategy for replacing today's assignee when someone presses the button."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def initial_state(self, members: Sequence[Member], selected: Member, today: date) -> RotationState:
        pass

    @abstractmethod
    def select_next(self, members: Sequence[Member], state: RotationState, trigger_member_id: str) -> Selection:
        pass

    @abstractmethod
    def next_state(self, state: RotationState, selection: Selection) -> RotationState:
        pass


class _PointerBookkeeping:
    def initial_state(self, members: Sequence[Member], selected: Member, today: date) -> PointerState:
        return PointerState(last_assigned_member_id=selected.member_id, last_assignment_date=today)

    def next_state(self, state: RotationState, selection: Selection) -> PointerState:
        if not isinstance(state, PointerState):
            raise InvalidRotationState(f"Expected a pointer state, found {state.kind}")
        return state.model_copy(update={"last_assigned_member_id": selection.member.member_id})


class ExclusionRankPolicy(_PointerBookkeeping, ReselectionPolicy):
    @property
    def name(self) -> str:
        return "exclusion_rank"

    def select_next(self, members: Sequence[Member], state: RotationState, trigger_member_id: str) -> Selection:
        if not members:
            raise NoMembersAvailable("No members are registered for the rotation")

        for excluded in (
            {trigger_member_id, state.current_assignee},
            {trigger_member_id},
            set(),
        ):
            selected = _first_ranked(members, excluded)
            if selected is not None:
                logger.info("Exclusion-rank selection", excluded=sorted(excluded), selected=selected.member_id)
                return Selection(member=selected)

        raise NoMembersAvailable("No members are registered for the rotation")


class FixedRotationPolicy(ReselectionPolicy):
    @property
    def name(self) -> str:
        return "fixed_rotation"

    def initial_state(self, members: Sequence[Member], selected: Member, today: date) -> ListCursorState:
        rotation_list = [m.member_id for m in rank(members)]
        logger.info("Generated rotation list", rotation_list=rotation_list)
        return ListCursorState(
            assignment_date=today,
            rotation_list=rotation_list,
            current_list_index=rotation_list.index(selected.member_id),
            current_assigned_member_id=selected.member_id,
        )

    def select_next(self, members: Sequence[Member], state: RotationState, trigger_member_id: str) -> Selection:
        if not isinstance(state, ListCursorState):
            raise InvalidRotationState("Fixed rotation requires a rotation list in the stored state")

        rotation_list = state.rotation_list
        size = len(rotation_list)
        if size < 2:
            raise NotEnoughMembers("At least two members are needed to reselect")

        by_id = {m.member_id: m for m in members}
        for step in range(1, size):
            index = (state.current_list_index + step) % size
            member = by_id.get(rotation_list[index])
            if member is not None:
                logger.info("Advanced rotation cursor", previous_index=state.current_list_index, new_index=index)
                return Selection(member=member, list_index=index)
            logger.warning("Skipping member no longer in directory", member_id=rotation_list[index])

        raise NotEnoughMembers("No other member of today's rotation list is still registered")

    def next_state(self, state: RotationState, selection: Selection) -> ListCursorState:
        if not isinstance(state, ListCursorState) or selection.list_index is None:
            raise InvalidRotationState("Cannot advance the rotation list without a cursor")
        return ListCursorState(
            assignment_date=state.assignment_date,
            rotation_list=state.rotation_list,
            current_list_index=selection.list_index,
            current_assigned_member_id=selection.member.member_id,
        )


class IdRotationPolicy(_PointerBookkeeping, ReselectionPolicy):
    @property
    def name(self) -> str:
        return "id_rotation"

    def select_next(self, members: Sequence[Member], state: RotationState, trigger_member_id: str) -> Selection:
        if not members:
            raise NoMembersAvailable("No members are registered for the rotation")

        ordered = sorted(members, key=lambda m: m.member_id)
        ids = [m.member_id for m in ordered]

        if trigger_member_id not in ids:
            logger.warning("Trigger member not in directory, selecting the first member", member_id=trigger_member_id)
            return Selection(member=ordered[0])

        next_index = (ids.index(trigger_member_id) + 1) % len(ordered)
        return Selection(member=ordered[next_index])


POLICIES: dict[str, type[ReselectionPolicy]] = {
    "exclusion_rank": ExclusionRankPolicy,
    "fixed_rotation": FixedRotationPolicy,
    "id_rotation": IdRotationPolicy,
}


def build_policy(name: str) -> ReselectionPolicy:
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown reselection policy: {name}") from None
