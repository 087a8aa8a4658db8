"""Pydantic request/response models for daily problem and assessment endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

# --- Daily problems ---


class DailyProblemResponse(BaseModel):
    id: int
    subject: str
    title: str
    description: str
    boilerplate_code: str
    language: str
    points_for_attempt: int
    test_case_count: int
    solution_code: str | None = None


class ActiveProblemResponse(BaseModel):
    subject: str
    problem: DailyProblemResponse | None = None


class DailyAttemptResponse(BaseModel):
    problem_id: int
    run_count: int
    runs_remaining: int
    is_locked: bool
    passed: bool
    last_results: list[dict[str, Any]] = []
    last_attempted_at: datetime | None = None


class SubmitCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=65536)


class SubmitCodeResponse(BaseModel):
    passed: bool
    is_locked: bool
    run_count: int
    points_awarded: int
    results: list[dict[str, Any]]
    solution_code: str | None = None


# --- Assessments ---


class QuestionResponse(BaseModel):
    id: str
    question_type: str
    prompt: str
    options: list[str] = []


class AttemptResponse(BaseModel):
    assessment_id: int
    status: str
    strikes: int
    score: int
    answered: int
    total_questions: int


class StartAssessmentResponse(AttemptResponse):
    title: str
    question: QuestionResponse | None = None


class SubmitAnswerRequest(BaseModel):
    question_id: str = Field(..., min_length=1)
    answer: int | str


class SubmitAnswerResponse(BaseModel):
    is_correct: bool
    correct_answer: Any = None
    attempt: AttemptResponse
    next_question: QuestionResponse | None = None


class UnlockAttemptRequest(BaseModel):
    user_id: int = Field(..., gt=0)
