"""Daily coding problems: access gating, run limit, and attempt locking.

Code runs against the execution API before the user row is touched, so no
user write is held open while waiting on the external service. The attempt
is then re-checked and updated inside the optimistic write loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.assessments.code_runner import CodeRunner
from learnstack.catalog.snapshot import Catalog
from learnstack.config import get_settings
from learnstack.db.models import DailyProblem
from learnstack.errors import AccessDeniedError, InvalidStateError, NotFoundError
from learnstack.progress.activity import ActivityDelta, apply_activity
from learnstack.progress.models import DailyProblemAttempt, UserSnapshot
from learnstack.progress.service import ProgressService

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    passed: bool
    passed_count: int
    total: int
    results: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class SubmissionResult:
    passed: bool
    is_locked: bool
    run_count: int
    points_awarded: int
    results: list[dict[str, Any]]
    solution_code: str | None = None


async def run_test_cases(runner: CodeRunner, problem: DailyProblem, code: str) -> RunReport:
    """Run the hidden test cases in order, stopping at the first failure or error."""
    cases = problem.test_cases or []
    results: list[dict[str, Any]] = []
    passed_count = 0
    for index, case in enumerate(cases, start=1):
        execution = await runner.run(problem.language, code, case.get("input", ""))
        if execution.error:
            results.append({"case": index, "status": "error", "error": execution.error})
            break
        output = execution.stdout.strip()
        expected = (case.get("expected_output") or "").strip()
        if output != expected:
            results.append({"case": index, "status": "failed", "expected": expected, "got": output})
            break
        passed_count += 1
        results.append({"case": index, "status": "passed"})
    return RunReport(passed=passed_count == len(cases), passed_count=passed_count, total=len(cases), results=results)


def _reject_if_closed(attempt: DailyProblemAttempt, run_limit: int, problem_id: int) -> None:
    if attempt.passed:
        raise InvalidStateError("Problem already solved", problem_id=problem_id, reason="passed")
    if attempt.is_locked:
        raise InvalidStateError("No attempts left for this problem", problem_id=problem_id, reason="locked")
    if attempt.run_count >= run_limit:
        raise InvalidStateError("Run limit reached", problem_id=problem_id, reason="run_limit")


class DailyProblemService:
    def __init__(self, db: AsyncSession, redis: object | None = None, runner: CodeRunner | None = None) -> None:
        self.db = db
        self.redis = redis
        self.runner = runner or CodeRunner()
        self.settings = get_settings()
        self.progress = ProgressService(db, redis)

    async def _get_problem(self, problem_id: int) -> DailyProblem:
        problem = await self.db.get(DailyProblem, problem_id)
        if problem is None:
            raise NotFoundError(f"Daily problem {problem_id} not found", problem_id=problem_id)
        return problem

    async def _require_subject_access(self, user_id: int, subject: str) -> None:
        if not await self.progress.check_subject_access(user_id, subject):
            raise AccessDeniedError(f"Subject {subject} is locked", subject=subject)

    async def get_active(self, user_id: int, subject: str) -> DailyProblem | None:
        """Active problem for a subject; None when the subject is locked for the user."""
        if not await self.progress.check_subject_access(user_id, subject):
            return None
        result = await self.db.execute(
            select(DailyProblem)
            .where(DailyProblem.subject == subject, DailyProblem.is_active.is_(True))
            .order_by(DailyProblem.created_at.desc(), DailyProblem.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_attempt(self, user_id: int, problem_id: int) -> DailyProblemAttempt:
        snapshot = await self.progress.get_snapshot(user_id)
        return snapshot.daily_problem_attempts.get(str(problem_id), DailyProblemAttempt())

    async def get_problem(self, user_id: int, problem_id: int) -> tuple[DailyProblem, str | None]:
        """Problem plus its solution, which is only revealed once the attempt is closed."""
        problem = await self._get_problem(problem_id)
        await self._require_subject_access(user_id, problem.subject)
        attempt = await self.get_attempt(user_id, problem_id)
        solution = problem.solution_code if attempt.is_locked or attempt.passed else None
        return problem, solution

    async def submit(self, user_id: int, problem_id: int, code: str, now: datetime | None = None) -> SubmissionResult:
        if now is None:
            now = datetime.now(timezone.utc)
        problem = await self._get_problem(problem_id)
        await self._require_subject_access(user_id, problem.subject)

        key = str(problem_id)
        run_limit = self.settings.daily_problem_run_limit
        retention = self.settings.daily_activity_retention_days

        attempt = await self.get_attempt(user_id, problem_id)
        if not attempt.is_locked and not attempt.passed and attempt.run_count >= run_limit:
            def _lock(snapshot: UserSnapshot, _catalog: Catalog | None) -> None:
                stored = snapshot.daily_problem_attempts.setdefault(key, DailyProblemAttempt())
                stored.is_locked = True

            await self.progress.mutate(user_id, _lock, needs_catalog=False)
        _reject_if_closed(attempt, run_limit, problem_id)

        report = await run_test_cases(self.runner, problem, code)

        def _record(snapshot: UserSnapshot, _catalog: Catalog | None) -> SubmissionResult:
            stored = snapshot.daily_problem_attempts.setdefault(key, DailyProblemAttempt())
            # A concurrent submission may have closed the attempt while the code ran.
            _reject_if_closed(stored, run_limit, problem_id)

            stored.run_count += 1
            stored.passed = report.passed
            stored.last_results = report.results
            stored.last_submitted_code = code
            stored.last_attempted_at = now

            points = 0
            if stored.run_count == 1 and not stored.points_awarded:
                points = problem.points_for_attempt
                stored.points_awarded = True
            apply_activity(snapshot, ActivityDelta(points_earned=points), now=now, retention_days=retention)

            if stored.passed or stored.run_count >= run_limit:
                stored.is_locked = True
            return SubmissionResult(
                passed=stored.passed,
                is_locked=stored.is_locked,
                run_count=stored.run_count,
                points_awarded=points,
                results=report.results,
                solution_code=problem.solution_code if stored.is_locked else None,
            )

        _, result = await self.progress.mutate(user_id, _record, needs_catalog=False)
        logger.info(
            "User %s submitted problem %s: %d/%d passed, run %d",
            user_id, problem_id, report.passed_count, report.total, result.run_count,
        )
        return result
