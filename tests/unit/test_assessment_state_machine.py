"""Assessment attempt state machine tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from learnstack.assessments.assessment_service import (
    is_correct_answer,
    public_question,
    record_answer,
    register_violation,
    reopen_attempt,
    validate_transition,
)
from learnstack.errors import InvalidStateError, NotFoundError
from learnstack.progress.models import AssessmentAttempt

NOW = datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc)

QUESTIONS = [
    {
        "id": "q1",
        "position": 1,
        "question_type": "mcq",
        "prompt": "Worst case of linear search?",
        "options": ["O(1)", "O(log n)", "O(n)"],
        "correct_index": 2,
    },
    {
        "id": "q2",
        "position": 2,
        "question_type": "short_answer",
        "prompt": "Name the divide-and-conquer search.",
        "short_answers": ["binary search", "binary"],
    },
]


class TestTransitions:
    """Allowed and rejected attempt status changes."""

    @pytest.mark.parametrize("target", ["completed", "locked"])
    def test_from_in_progress(self, target: str):
        """An in-progress attempt can complete or lock."""
        validate_transition("inprogress", target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [("completed", "locked"), ("locked", "completed"), ("completed", "inprogress"), ("inprogress", "inprogress")],
    )
    def test_rejected_transitions(self, current: str, target: str):
        """Completed is terminal and no status moves to itself."""
        with pytest.raises(InvalidStateError, match="Invalid transition"):
            validate_transition(current, target)


class TestViolations:
    """Proctoring strikes."""

    def test_locks_at_limit(self):
        """The strike that reaches the limit locks the attempt."""
        attempt = AssessmentAttempt(started_at=NOW)
        register_violation(attempt, strike_limit=3, now=NOW)
        register_violation(attempt, strike_limit=3, now=NOW)
        assert attempt.status == "inprogress"
        register_violation(attempt, strike_limit=3, now=NOW)
        assert attempt.strikes == 3
        assert attempt.status == "locked"
        assert attempt.finished_at == NOW

    def test_no_strikes_after_lock(self):
        """A locked attempt takes no further strikes."""
        attempt = AssessmentAttempt(status="locked", strikes=3)
        with pytest.raises(InvalidStateError):
            register_violation(attempt, strike_limit=3, now=NOW)
        assert attempt.strikes == 3


class TestReopen:
    """A mentor reopening a strike-locked attempt."""

    def test_locked_to_in_progress(self):
        """Locked may move back to in-progress."""
        validate_transition("locked", "inprogress")

    def test_clears_strikes(self):
        """Reopening resets strikes and the finish time."""
        attempt = AssessmentAttempt(status="locked", strikes=3, finished_at=NOW)
        reopen_attempt(attempt)
        assert (attempt.status, attempt.strikes, attempt.finished_at) == ("inprogress", 0, None)

    def test_strikes_count_again_after_reopen(self):
        """Strikes after a reopen count from zero."""
        attempt = AssessmentAttempt(status="locked", strikes=3)
        reopen_attempt(attempt)
        register_violation(attempt, strike_limit=3, now=NOW)
        assert (attempt.status, attempt.strikes) == ("inprogress", 1)

    @pytest.mark.parametrize("status", ["inprogress", "completed"])
    def test_only_locked_attempts(self, status: str):
        """Only a locked attempt can be reopened; others are left untouched."""
        attempt = AssessmentAttempt(status=status, strikes=1)
        with pytest.raises(InvalidStateError, match="not locked"):
            reopen_attempt(attempt)
        assert (attempt.status, attempt.strikes) == (status, 1)


class TestAnswers:
    """Answer checking and recording."""

    def test_mcq_by_index(self):
        """Multiple choice is matched on the option index."""
        assert is_correct_answer(QUESTIONS[0], 2) is True
        assert is_correct_answer(QUESTIONS[0], "2") is True
        assert is_correct_answer(QUESTIONS[0], 1) is False
        assert is_correct_answer(QUESTIONS[0], "c") is False
        assert is_correct_answer(QUESTIONS[0], None) is False

    def test_short_answer_normalized(self):
        """Short answers ignore case and surrounding whitespace."""
        assert is_correct_answer(QUESTIONS[1], "  Binary Search ") is True
        assert is_correct_answer(QUESTIONS[1], "linear") is False

    def test_full_attempt(self):
        """Answering the last question completes the attempt with its score."""
        attempt = AssessmentAttempt(started_at=NOW)
        assert record_answer(attempt, QUESTIONS, "q1", 2, 10, NOW) is True
        assert attempt.status == "inprogress"
        assert record_answer(attempt, QUESTIONS, "q2", "merge", 10, NOW) is False
        assert attempt.status == "completed"
        assert attempt.score == 10
        assert attempt.answers["q2"] == {"answer": "merge", "is_correct": False}

    def test_duplicate_answer_rejected(self):
        """A question cannot be answered twice."""
        attempt = AssessmentAttempt(started_at=NOW)
        record_answer(attempt, QUESTIONS, "q1", 2, 10, NOW)
        with pytest.raises(InvalidStateError, match="already answered"):
            record_answer(attempt, QUESTIONS, "q1", 2, 10, NOW)
        assert attempt.score == 10

    def test_unknown_question(self):
        """Answering a question outside the assessment is NotFound."""
        with pytest.raises(NotFoundError):
            record_answer(AssessmentAttempt(), QUESTIONS, "q9", 0, 10, NOW)

    def test_locked_attempt_rejects_answers(self):
        """A locked attempt accepts no answers."""
        attempt = AssessmentAttempt(status="locked")
        with pytest.raises(InvalidStateError):
            record_answer(attempt, QUESTIONS, "q1", 2, 10, NOW)

    def test_public_question_hides_key(self):
        """The learner-facing question omits the answer key."""
        assert "correct_index" not in public_question(QUESTIONS[0])
        assert "short_answers" not in public_question(QUESTIONS[1])
        assert public_question(QUESTIONS[0])["options"] == QUESTIONS[0]["options"]
