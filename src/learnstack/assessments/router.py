"""Daily problem and mentor assessment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.assessments.assessment_service import AssessmentService, public_question
from learnstack.assessments.code_runner import CodeRunner
from learnstack.assessments.daily_problem_service import DailyProblemService
from learnstack.assessments.schemas import (
    ActiveProblemResponse,
    AttemptResponse,
    DailyAttemptResponse,
    DailyProblemResponse,
    QuestionResponse,
    StartAssessmentResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    SubmitCodeRequest,
    SubmitCodeResponse,
    UnlockAttemptRequest,
)
from learnstack.auth.dependencies import get_current_user, require_mentor
from learnstack.config import get_settings
from learnstack.db.models import Assessment, DailyProblem, User
from learnstack.dependencies import get_db, get_redis_dep
from learnstack.progress.models import AssessmentAttempt

router = APIRouter(prefix="/api/v1", tags=["Practice"])


def get_code_runner() -> CodeRunner:
    """Code runner dependency (overridden in tests)."""
    return CodeRunner()


def _problem_response(problem: DailyProblem, solution: str | None = None) -> DailyProblemResponse:
    return DailyProblemResponse(
        id=problem.id,
        subject=problem.subject,
        title=problem.title,
        description=problem.description,
        boilerplate_code=problem.boilerplate_code,
        language=problem.language,
        points_for_attempt=problem.points_for_attempt,
        test_case_count=len(problem.test_cases or []),
        solution_code=solution,
    )


def _attempt_response(assessment: Assessment, attempt: AssessmentAttempt) -> AttemptResponse:
    return AttemptResponse(
        assessment_id=assessment.id,
        status=attempt.status,
        strikes=attempt.strikes,
        score=attempt.score,
        answered=len(attempt.answers),
        total_questions=len(assessment.questions or []),
    )


# ── Daily problems ──


@router.get("/daily-problems/active/{subject}", response_model=ActiveProblemResponse)
async def get_active_problem(
    subject: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Today's problem for a subject; empty when none is active or the subject is locked."""
    problem = await DailyProblemService(db, redis).get_active(user.id, subject)
    return ActiveProblemResponse(subject=subject, problem=_problem_response(problem) if problem else None)


@router.get("/daily-problems/{problem_id}", response_model=DailyProblemResponse)
async def get_problem(
    problem_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    problem, solution = await DailyProblemService(db, redis).get_problem(user.id, problem_id)
    return _problem_response(problem, solution)


@router.get("/daily-problems/{problem_id}/attempt", response_model=DailyAttemptResponse)
async def get_attempt(
    problem_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    attempt = await DailyProblemService(db, redis).get_attempt(user.id, problem_id)
    return DailyAttemptResponse(
        problem_id=problem_id,
        run_count=attempt.run_count,
        runs_remaining=max(0, get_settings().daily_problem_run_limit - attempt.run_count),
        is_locked=attempt.is_locked,
        passed=attempt.passed,
        last_results=attempt.last_results,
        last_attempted_at=attempt.last_attempted_at,
    )


@router.post("/daily-problems/{problem_id}/submit", response_model=SubmitCodeResponse)
async def submit_code(
    problem_id: int,
    body: SubmitCodeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
    runner: CodeRunner = Depends(get_code_runner),
):
    """Run the submission against the hidden test cases."""
    result = await DailyProblemService(db, redis, runner=runner).submit(user.id, problem_id, body.code)
    return SubmitCodeResponse(
        passed=result.passed,
        is_locked=result.is_locked,
        run_count=result.run_count,
        points_awarded=result.points_awarded,
        results=result.results,
        solution_code=result.solution_code,
    )


# ── Assessments ──


@router.post("/assessments/{assessment_id}/start", response_model=StartAssessmentResponse)
async def start_assessment(
    assessment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Start or resume an attempt; returns the first unanswered question."""
    assessment, attempt = await AssessmentService(db, redis).start(user.id, assessment_id)
    pending = [q for q in assessment.questions if q.get("id") not in attempt.answers]
    question = None
    if attempt.status == "inprogress" and pending:
        question = QuestionResponse(**public_question(pending[0]))
    return StartAssessmentResponse(
        **_attempt_response(assessment, attempt).model_dump(),
        title=assessment.title,
        question=question,
    )


@router.post("/assessments/{assessment_id}/violations", response_model=AttemptResponse)
async def record_violation(
    assessment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Register one proctoring strike (tab switch, focus loss)."""
    service = AssessmentService(db, redis)
    attempt = await service.record_violation(user.id, assessment_id)
    return _attempt_response(await service.get_assessment(assessment_id), attempt)


@router.post("/assessments/{assessment_id}/answers", response_model=SubmitAnswerResponse)
async def submit_answer(
    assessment_id: int,
    body: SubmitAnswerRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    service = AssessmentService(db, redis)
    result = await service.submit_answer(user.id, assessment_id, body.question_id, body.answer)
    assessment = await service.get_assessment(assessment_id)
    return SubmitAnswerResponse(
        is_correct=result.is_correct,
        correct_answer=result.correct_answer,
        attempt=_attempt_response(assessment, result.attempt),
        next_question=QuestionResponse(**result.next_question) if result.next_question else None,
    )


@router.post("/mentor/assessments/{assessment_id}/unlock", response_model=AttemptResponse)
async def unlock_attempt(
    assessment_id: int,
    body: UnlockAttemptRequest,
    _mentor: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Reopen a learner's attempt that was locked by proctoring strikes."""
    service = AssessmentService(db, redis)
    attempt = await service.unlock_attempt(body.user_id, assessment_id)
    return _attempt_response(await service.get_assessment(assessment_id), attempt)
