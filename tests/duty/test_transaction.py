from collections import Counter
from unittest.mock import MagicMock, call

import pytest

from duty.errors import DownstreamUnavailable, InvalidRotationState, RotationStateConflict
from duty.models import PointerState, Selection
from duty.selection import ExclusionRankPolicy, FixedRotationPolicy, IdRotationPolicy
from duty.transaction import AssignmentTransaction


@pytest.fixture
def recorder():
    return MagicMock()


@pytest.fixture
def directory(recorder):
    return recorder.directory


@pytest.fixture
def state_store(recorder):
    return recorder.state_store


class TestApplyInitial:
    def test_increments_then_commits(self, recorder, directory, state_store, members, today):
        state = PointerState(last_assigned_member_id="B", last_assignment_date=today)

        AssignmentTransaction(directory, state_store, ExclusionRankPolicy()).apply_initial(members[1], state)

        assert recorder.mock_calls == [call.directory.adjust_count("B", 1), call.state_store.put(state)]

    def test_commit_failure_surfaces(self, directory, state_store, members, today):
        state_store.put.side_effect = DownstreamUnavailable("boom")
        state = PointerState(last_assigned_member_id="B", last_assignment_date=today)

        with pytest.raises(DownstreamUnavailable):
            AssignmentTransaction(directory, state_store, ExclusionRankPolicy()).apply_initial(members[1], state)

        directory.adjust_count.assert_called_once_with("B", 1)


class TestApplyReselection:
    def test_fixed_order(self, recorder, directory, state_store, members, today):
        policy = FixedRotationPolicy()
        state = policy.initial_state(members, members[1], today)
        selection = policy.select_next(members, state, "B")

        new_state = AssignmentTransaction(directory, state_store, policy).apply_reselection(
            members[1], selection, state
        )

        assert recorder.mock_calls == [
            call.directory.adjust_count("B", -1),
            call.directory.adjust_count("C", 1),
            call.state_store.put(new_state, expected_assignee="B"),
        ]
        assert new_state.current_assigned_member_id == "C"
        assert new_state.rotation_list == state.rotation_list
        assert new_state.assignment_date == today

    def test_missing_state_fails_closed(self, directory, state_store, members):
        transaction = AssignmentTransaction(directory, state_store, IdRotationPolicy())

        with pytest.raises(InvalidRotationState):
            transaction.apply_reselection(members[0], Selection(member=members[1]), None)

        directory.adjust_count.assert_not_called()
        state_store.put.assert_not_called()

    def test_missing_cursor_fails_closed(self, directory, state_store, members, today):
        state = FixedRotationPolicy().initial_state(members, members[1], today)
        transaction = AssignmentTransaction(directory, state_store, FixedRotationPolicy())

        with pytest.raises(InvalidRotationState):
            transaction.apply_reselection(members[1], Selection(member=members[2]), state)

        directory.adjust_count.assert_not_called()

    def test_mismatched_state_shape_fails_closed(self, directory, state_store, members, today):
        state = FixedRotationPolicy().initial_state(members, members[1], today)
        transaction = AssignmentTransaction(directory, state_store, ExclusionRankPolicy())

        with pytest.raises(InvalidRotationState):
            transaction.apply_reselection(members[1], Selection(member=members[2]), state)

        directory.adjust_count.assert_not_called()

    def test_previous_member_left_directory(self, directory, state_store, members, today):
        state = PointerState(last_assigned_member_id="X", last_assignment_date=today)

        AssignmentTransaction(directory, state_store, IdRotationPolicy()).apply_reselection(
            None, Selection(member=members[0]), state
        )

        directory.adjust_count.assert_called_once_with("A", 1)
        state_store.put.assert_called_once()

    def test_rejected_decrement_is_skipped(self, recorder, directory, state_store, make_member, today):
        directory.adjust_count.side_effect = [InvalidRotationState("count is zero"), 1]
        previous = make_member("B", 0)
        state = PointerState(last_assigned_member_id="B", last_assignment_date=today)

        new_state = AssignmentTransaction(directory, state_store, ExclusionRankPolicy()).apply_reselection(
            previous, Selection(member=make_member("C", 0)), state
        )

        assert recorder.mock_calls == [
            call.directory.adjust_count("B", -1),
            call.directory.adjust_count("C", 1),
            call.state_store.put(new_state, expected_assignee="B"),
        ]
        assert new_state.last_assigned_member_id == "C"

    def test_conflict_leaves_counters_applied(self, directory, state_store, members, today):
        state_store.put.side_effect = RotationStateConflict("changed")
        state = PointerState(last_assigned_member_id="B", last_assignment_date=today)

        with pytest.raises(RotationStateConflict):
            AssignmentTransaction(directory, state_store, ExclusionRankPolicy()).apply_reselection(
                members[1], Selection(member=members[2]), state
            )

        assert directory.adjust_count.call_args_list == [call("B", -1), call("C", 1)]

    def test_decrement_failure_stops_transaction(self, directory, state_store, members, today):
        directory.adjust_count.side_effect = DownstreamUnavailable("down")
        state = PointerState(last_assigned_member_id="B", last_assignment_date=today)

        with pytest.raises(DownstreamUnavailable):
            AssignmentTransaction(directory, state_store, ExclusionRankPolicy()).apply_reselection(
                members[1], Selection(member=members[2]), state
            )

        directory.adjust_count.assert_called_once_with("B", -1)
        state_store.put.assert_not_called()


@pytest.mark.parametrize(
    "policy",
    [ExclusionRankPolicy(), FixedRotationPolicy(), IdRotationPolicy()],
    ids=lambda p: p.name,
)
def test_daily_counts_are_conserved(policy, directory, state_store, make_member, today):
    members = [make_member(mid, count) for mid, count in zip("ABCDE", [2, 0, 1, 0, 3])]
    deltas: Counter = Counter()
    directory.adjust_count.side_effect = lambda member_id, delta: deltas.update({member_id: delta})
    transaction = AssignmentTransaction(directory, state_store, policy)

    first = members[1]
    state = policy.initial_state(members, first, today)
    transaction.apply_initial(first, state)

    by_id = {m.member_id: m for m in members}
    for _ in range(12):
        selection = policy.select_next(members, state, state.current_assignee)
        state = transaction.apply_reselection(by_id[state.current_assignee], selection, state)

    assert sum(deltas.values()) == 1
    assert deltas[state.current_assignee] >= 1
    assert all(delta in (0, 1) for delta in deltas.values())
