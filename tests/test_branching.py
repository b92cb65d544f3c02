"""Tests for the branch engine."""

import pytest
from dyn_form.engine.branching import BranchEngine, condition_matches
from dyn_form.models.form_state import FormState
from dyn_form.models.row_config import BranchCondition, parse_rows


def _plan_rows(conditions, plan_type="select"):
    return parse_rows([
        {
            "id": 0,
            "fields": [{"id": "plan", "type": plan_type, "options": [{"value": "a"}, {"value": "b"}]}],
            "branchConditions": conditions,
        },
        {"id": 1, "fields": [{"id": "one", "type": "text"}]},
        {"id": 2, "fields": [{"id": "two", "type": "text"}]},
        {"id": 3, "fields": [{"id": "three", "type": "text"}]},
    ])


class TestConditionMatches:
    """Tests for explicit value matching."""

    def test_scalar_equality(self):
        """Test matching a scalar value."""
        condition = BranchCondition(field_id="plan", value="a", next_row=2)
        assert condition_matches(condition, "a")
        assert not condition_matches(condition, "b")

    def test_or_membership(self):
        """Test that an or-list matches any of its elements."""
        condition = BranchCondition(field_id="plan", value=["a", "b"], operator="or", next_row=2)
        assert condition_matches(condition, "b")
        assert not condition_matches(condition, "c")

    def test_and_requires_every_element(self):
        """Test that an and-list only matches when every element equals the value."""
        mixed = BranchCondition(field_id="plan", value=["a", "b"], operator="and", next_row=2)
        same = BranchCondition(field_id="plan", value=["a", "a"], operator="and", next_row=2)
        assert not condition_matches(mixed, "a")
        assert condition_matches(same, "a")

    def test_missing_value_never_matches(self):
        """Test that a condition without a value has no explicit match."""
        condition = BranchCondition(field_id="plan", next_row=2, default_branch=True)
        assert not condition_matches(condition, None)
        assert not condition_matches(condition, "a")


class TestDecide:
    """Tests for next-row decisions."""

    def test_first_match_wins(self):
        """Test that conditions are scanned in declaration order."""
        engine = BranchEngine(_plan_rows([
            {"fieldId": "plan", "value": "a", "nextRow": 2},
            {"fieldId": "plan", "value": "a", "nextRow": 3},
        ]))
        assert engine.decide(engine.row(0), "plan", "a") == 2

    def test_default_branch(self):
        """Test the default branch applies when nothing matches."""
        engine = BranchEngine(_plan_rows([
            {"fieldId": "plan", "nextRow": 3, "defaultBranch": True},
            {"fieldId": "plan", "value": "a", "nextRow": 2},
        ]))
        assert engine.decide(engine.row(0), "plan", "a") == 2
        assert engine.decide(engine.row(0), "plan", "b") == 3

    def test_sequential_fallback(self):
        """Test falling back to the row after the current one."""
        engine = BranchEngine(_plan_rows([{"fieldId": "plan", "value": "a", "nextRow": 2}]))
        assert engine.decide(engine.row(0), "plan", "b") == 1

    def test_and_list_falls_through(self):
        """Test that a multi-valued and-list falls through to the fallback."""
        engine = BranchEngine(_plan_rows([
            {"fieldId": "plan", "value": ["a", "b"], "operator": "and", "nextRow": 3},
        ]))
        assert engine.decide(engine.row(0), "plan", "a") == 1

    def test_other_field_ignored(self):
        """Test that conditions for another field do not apply."""
        engine = BranchEngine(_plan_rows([{"fieldId": "plan", "value": "a", "nextRow": 3}]))
        assert engine.decide(engine.row(0), "other", "a") == 1

    def test_decide_is_pure(self):
        """Test that deciding twice gives the same answer and leaves rows alone."""
        engine = BranchEngine(_plan_rows([{"fieldId": "plan", "value": "a", "nextRow": 2}]))
        before = engine.row(0).model_dump()
        assert engine.decide(engine.row(0), "plan", "a") == engine.decide(engine.row(0), "plan", "a")
        assert engine.row(0).model_dump() == before


class TestReconcile:
    """Tests for path reconciliation."""

    def test_branch_appends_target(self, user_type_rows):
        """Test choosing business renders row 2 after row 0."""
        engine = BranchEngine(parse_rows(user_type_rows))
        state = FormState(current_rows=[0])

        outcome = engine.reconcile(state, 0, "userType", "business")

        assert state.current_rows == [0, 2]
        assert state.branch_history == {0: 2}
        assert outcome.appended == 2
        assert outcome.pruned == []

    def test_changing_answer_prunes(self, user_type_rows):
        """Test switching answers replaces the following row."""
        engine = BranchEngine(parse_rows(user_type_rows))
        state = FormState(current_rows=[0])
        engine.reconcile(state, 0, "userType", "business")

        outcome = engine.reconcile(state, 0, "userType", "individual")

        assert state.current_rows == [0, 1]
        assert state.branch_history == {0: 1}
        assert outcome.pruned == [2]
        assert outcome.appended == 1

    def test_follow_known_target(self, user_type_rows):
        """Test that following a recorded target prunes and appends like a change."""
        engine = BranchEngine(parse_rows(user_type_rows))
        state = FormState(current_rows=[0])
        engine.reconcile(state, 0, "userType", "individual")

        outcome = engine.follow(state, 0, 2)

        assert state.current_rows == [0, 2]
        assert state.branch_history == {0: 2}
        assert outcome.pruned == [1]
        assert outcome.appended == 2

    def test_same_answer_is_unchanged(self, user_type_rows):
        """Test that repeating an answer does not touch the path."""
        engine = BranchEngine(parse_rows(user_type_rows))
        state = FormState(current_rows=[0])
        engine.reconcile(state, 0, "userType", "business")

        outcome = engine.reconcile(state, 0, "userType", "business")

        assert outcome.unchanged
        assert state.current_rows == [0, 2]

    def test_rewind_drops_pruned_history(self, chained_rows):
        """Test that pruned rows lose their history entries."""
        engine = BranchEngine(parse_rows(chained_rows))
        state = FormState(current_rows=[0])
        engine.reconcile(state, 0, "first", "x")
        engine.reconcile(state, 1, "second", "go")
        assert state.current_rows == [0, 1, 2]
        assert state.branch_history == {0: 1, 1: 2}

        outcome = engine.reconcile(state, 0, "first", "y")

        assert outcome.pruned == [1, 2]
        assert state.current_rows == [0, 2]
        assert state.branch_history == {0: 2}

    def test_unrendered_row_is_ignored(self, user_type_rows):
        """Test that a change in a row off the path does nothing."""
        engine = BranchEngine(parse_rows(user_type_rows))
        state = FormState(current_rows=[0])
        assert engine.reconcile(state, 2, "companyName", "x") is None
        assert state.current_rows == [0]

    def test_fallback_past_last_row(self):
        """Test that a fallback to a missing row appends nothing."""
        engine = BranchEngine(parse_rows([
            {
                "id": 0,
                "fields": [{"id": "kind", "type": "radio", "options": [{"value": "a"}]}],
                "branchConditions": [{"fieldId": "kind", "value": "a", "nextRow": 1}],
            },
            {"id": 1, "fields": [{"id": "confirm", "type": "radio", "options": [{"value": "ok"}]}]},
        ]))
        state = FormState(current_rows=[0])
        engine.reconcile(state, 0, "kind", "a")

        outcome = engine.reconcile(state, 1, "confirm", "ok")

        assert outcome.next_row == 2
        assert outcome.appended is None
        assert state.current_rows == [0, 1]
        assert 1 not in state.branch_history

    def test_branch_back_is_not_appended(self):
        """Test that a branch to an already-rendered row keeps rows unique."""
        engine = BranchEngine(parse_rows([
            {
                "id": 0,
                "fields": [{"id": "kind", "type": "radio", "options": [{"value": "a"}]}],
                "branchConditions": [{"fieldId": "kind", "value": "a", "nextRow": 1}],
            },
            {
                "id": 1,
                "fields": [{"id": "again", "type": "radio", "options": [{"value": "back"}]}],
                "branchConditions": [{"fieldId": "again", "value": "back", "nextRow": 0}],
            },
        ]))
        state = FormState(current_rows=[0])
        engine.reconcile(state, 0, "kind", "a")

        outcome = engine.reconcile(state, 1, "again", "back")

        assert outcome.appended is None
        assert state.current_rows == [0, 1]

    @pytest.mark.parametrize("value, expected", [("individual", [0, 1]), ("business", [0, 2])])
    def test_path_is_prefix_closed(self, user_type_rows, value, expected):
        """Test that the path always starts at row 0 without duplicates."""
        engine = BranchEngine(parse_rows(user_type_rows))
        state = FormState(current_rows=[0])
        engine.reconcile(state, 0, "userType", value)
        assert state.current_rows == expected
        assert len(set(state.current_rows)) == len(state.current_rows)
