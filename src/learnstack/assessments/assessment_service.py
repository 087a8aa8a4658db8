"""Mentor assessments: attempt state machine with a proctoring strike counter.

An attempt starts ``inprogress`` and ends either ``completed`` (last question
answered) or ``locked`` (strike limit reached). ``completed`` is terminal;
a mentor can reopen a ``locked`` attempt, which clears its strikes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.catalog.snapshot import Catalog
from learnstack.config import get_settings
from learnstack.db.models import Assessment
from learnstack.errors import AccessDeniedError, InvalidStateError, NotFoundError
from learnstack.progress.models import AssessmentAttempt, UserSnapshot
from learnstack.progress.service import ProgressService

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[str, list[str]] = {
    "inprogress": ["completed", "locked"],
    "completed": [],
    "locked": ["inprogress"],
}


def validate_transition(current_status: str, target_status: str) -> None:
    """Raise InvalidStateError if the transition is not allowed."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise InvalidStateError(
            f"Invalid transition: {current_status} -> {target_status}",
            current=current_status,
            target=target_status,
        )


def _require_in_progress(attempt: AssessmentAttempt) -> None:
    if attempt.status != "inprogress":
        raise InvalidStateError(f"Assessment is {attempt.status}", status=attempt.status)


def register_violation(attempt: AssessmentAttempt, strike_limit: int, now: datetime) -> AssessmentAttempt:
    """Count one proctoring strike; the attempt locks at the limit."""
    _require_in_progress(attempt)
    attempt.strikes += 1
    if attempt.strikes >= strike_limit:
        validate_transition(attempt.status, "locked")
        attempt.status = "locked"
        attempt.finished_at = now
    return attempt


def reopen_attempt(attempt: AssessmentAttempt) -> AssessmentAttempt:
    """Mentor unlock: a locked attempt resumes with a clean strike count."""
    if attempt.status != "locked":
        raise InvalidStateError(f"Assessment is not locked (status: {attempt.status})", status=attempt.status)
    validate_transition(attempt.status, "inprogress")
    attempt.status = "inprogress"
    attempt.strikes = 0
    attempt.finished_at = None
    return attempt


def is_correct_answer(question: dict[str, Any], answer: Any) -> bool:
    """MCQ answers compare by index; short answers trimmed and case-insensitive."""
    if question.get("question_type") == "mcq":
        try:
            return int(answer) == question.get("correct_index")
        except (TypeError, ValueError):
            return False
    if question.get("question_type") == "short_answer":
        given = str(answer or "").strip().lower()
        return any(given == accepted.strip().lower() for accepted in question.get("short_answers", []))
    return False


def record_answer(
    attempt: AssessmentAttempt,
    questions: list[dict[str, Any]],
    question_id: str,
    answer: Any,
    points_per_correct: int,
    now: datetime,
) -> bool:
    """Score one answer; answering the last question completes the attempt."""
    _require_in_progress(attempt)
    index = next((i for i, q in enumerate(questions) if q.get("id") == question_id), None)
    if index is None:
        raise NotFoundError(f"Question {question_id} not found", question_id=question_id)
    if question_id in attempt.answers:
        raise InvalidStateError("Question already answered", question_id=question_id)

    correct = is_correct_answer(questions[index], answer)
    attempt.answers[question_id] = {"answer": answer, "is_correct": correct}
    if correct:
        attempt.score += points_per_correct
    if index == len(questions) - 1:
        validate_transition(attempt.status, "completed")
        attempt.status = "completed"
        attempt.finished_at = now
    return correct


def public_question(question: dict[str, Any]) -> dict[str, Any]:
    """Question without its answer key."""
    return {k: v for k, v in question.items() if k not in ("correct_index", "short_answers")}


@dataclass
class AnswerResult:
    is_correct: bool
    correct_answer: Any
    attempt: AssessmentAttempt
    next_question: dict[str, Any] | None


class AssessmentService:
    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis
        self.settings = get_settings()
        self.progress = ProgressService(db, redis)

    async def get_assessment(self, assessment_id: int) -> Assessment:
        assessment = await self.db.get(Assessment, assessment_id)
        if assessment is None:
            raise NotFoundError(f"Assessment {assessment_id} not found", assessment_id=assessment_id)
        return assessment

    async def start(self, user_id: int, assessment_id: int, now: datetime | None = None) -> tuple[Assessment, AssessmentAttempt]:
        if now is None:
            now = datetime.now(timezone.utc)
        assessment = await self.get_assessment(assessment_id)
        if not assessment.is_active:
            raise AccessDeniedError("Assessment is not active", assessment_id=assessment_id)
        if not assessment.questions:
            raise NotFoundError("Assessment has no questions", assessment_id=assessment_id)
        key = str(assessment_id)

        def _start(snapshot: UserSnapshot, _catalog: Catalog | None) -> AssessmentAttempt:
            attempt = snapshot.assessment_attempts.get(key)
            if attempt is None:
                attempt = snapshot.assessment_attempts[key] = AssessmentAttempt(started_at=now)
            if attempt.status == "locked":
                raise AccessDeniedError(
                    "Assessment locked after proctoring violations",
                    assessment_id=assessment_id,
                    status="locked",
                )
            return attempt

        _, attempt = await self.progress.mutate(user_id, _start, needs_catalog=False)
        return assessment, attempt

    async def record_violation(self, user_id: int, assessment_id: int, now: datetime | None = None) -> AssessmentAttempt:
        if now is None:
            now = datetime.now(timezone.utc)
        key = str(assessment_id)
        limit = self.settings.assessment_strike_limit

        def _violation(snapshot: UserSnapshot, _catalog: Catalog | None) -> AssessmentAttempt:
            attempt = snapshot.assessment_attempts.get(key)
            if attempt is None:
                raise NotFoundError("Assessment attempt not found", assessment_id=assessment_id)
            return register_violation(attempt, limit, now)

        _, attempt = await self.progress.mutate(user_id, _violation, needs_catalog=False)
        logger.info("User %s assessment %s: strike %d (%s)", user_id, assessment_id, attempt.strikes, attempt.status)
        return attempt

    async def submit_answer(
        self,
        user_id: int,
        assessment_id: int,
        question_id: str,
        answer: Any,
        now: datetime | None = None,
    ) -> AnswerResult:
        if now is None:
            now = datetime.now(timezone.utc)
        assessment = await self.get_assessment(assessment_id)
        questions = list(assessment.questions or [])
        key = str(assessment_id)
        points = self.settings.assessment_points_per_correct

        def _answer(snapshot: UserSnapshot, _catalog: Catalog | None) -> tuple[bool, AssessmentAttempt]:
            attempt = snapshot.assessment_attempts.get(key)
            if attempt is None:
                raise NotFoundError("Assessment attempt not found", assessment_id=assessment_id)
            correct = record_answer(attempt, questions, question_id, answer, points, now)
            return correct, attempt

        _, (correct, attempt) = await self.progress.mutate(user_id, _answer, needs_catalog=False)

        index = next(i for i, q in enumerate(questions) if q.get("id") == question_id)
        question = questions[index]
        pending = [q for q in questions if q.get("id") not in attempt.answers]
        next_question = public_question(pending[0]) if attempt.status == "inprogress" and pending else None
        if question.get("question_type") == "mcq":
            correct_answer = question.get("correct_index")
        else:
            correct_answer = (question.get("short_answers") or [None])[0]
        return AnswerResult(is_correct=correct, correct_answer=correct_answer, attempt=attempt, next_question=next_question)

    async def unlock_attempt(self, user_id: int, assessment_id: int) -> AssessmentAttempt:
        """Reopen a user's strike-locked attempt (mentor action)."""
        await self.get_assessment(assessment_id)
        key = str(assessment_id)

        def _unlock(snapshot: UserSnapshot, _catalog: Catalog | None) -> AssessmentAttempt:
            attempt = snapshot.assessment_attempts.get(key)
            if attempt is None:
                raise NotFoundError("Assessment attempt not found", assessment_id=assessment_id, user_id=user_id)
            return reopen_attempt(attempt)

        _, attempt = await self.progress.mutate(user_id, _unlock, needs_catalog=False)
        logger.info("Unlocked assessment %s for user %s", assessment_id, user_id)
        return attempt
