"""Doubt thread state machine tests."""

from __future__ import annotations

import pytest

from learnstack.db.models import DoubtThread
from learnstack.doubts.service import VALID_TRANSITIONS, reopen_status, validate_transition
from learnstack.errors import InvalidStateError


class TestTransitions:
    """Allowed and rejected thread status changes."""

    @pytest.mark.parametrize(
        ("current", "target"),
        [("new", "in-progress"), ("new", "resolved"), ("in-progress", "resolved"), ("resolved", "new")],
    )
    def test_allowed(self, current: str, target: str):
        """Claim, resolve from either open state, and reopen are allowed."""
        validate_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [("in-progress", "new"), ("resolved", "resolved"), ("new", "new"), ("unknown", "resolved")],
    )
    def test_rejected(self, current: str, target: str):
        """A claimed thread never returns to the queue and nothing resolves twice."""
        with pytest.raises(InvalidStateError, match="Invalid transition"):
            validate_transition(current, target)

    def test_every_target_is_a_status(self):
        """The table only names statuses it also defines."""
        for targets in VALID_TRANSITIONS.values():
            assert set(targets) <= set(VALID_TRANSITIONS)


class TestReopenStatus:
    """Where a resolved thread goes when the learner writes again."""

    def test_back_to_its_mentor(self):
        """A thread that had a mentor goes back to that mentor."""
        assert reopen_status(DoubtThread(mentor_id=7, status="resolved")) == "in-progress"

    def test_back_to_the_queue(self):
        """A thread resolved before anyone claimed it rejoins the queue."""
        assert reopen_status(DoubtThread(mentor_id=None, status="resolved")) == "new"
