"""Per-user progress document.

The document is persisted as JSON columns on the ``users`` row and handled in
memory as these pydantic models. Topic and algorithm progress are keyed by the
catalog's stable string ids; only ``learning_path.topic_order`` carries order.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, Field

TopicStatus = Literal["locked", "available", "in-progress", "completed"]
AlgorithmStatus = Literal["locked", "available"]
LockOverride = Literal["locked", "unlocked"]
RankLevel = Literal["Bronze", "Silver", "Gold", "Platinum", "Diamond"]


class AlgorithmProgress(BaseModel):
    status: AlgorithmStatus = "available"
    completed: bool = False
    # Set only by admin user-scope lock/unlock; bypasses prerequisites and global locks.
    override: LockOverride | None = None
    time_spent_viz: int = 0
    time_spent_practice: int = 0
    accuracy_practice: int = 0
    best_time_practice: float | None = None
    attempts_practice: int = 0
    points_practice: int = 0
    last_attempt_viz: dt.datetime | None = None
    last_attempt_practice: dt.datetime | None = None
    completed_at: dt.datetime | None = None


class TopicProgress(BaseModel):
    status: TopicStatus = "available"
    override: LockOverride | None = None
    completion: int = 0
    total_time: int = 0  # minutes
    algorithms: dict[str, AlgorithmProgress] = Field(default_factory=dict)
    started_at: dt.datetime | None = None
    completed_at: dt.datetime | None = None


class Rank(BaseModel):
    level: RankLevel = "Bronze"
    points: int = 0


class TimeSpent(BaseModel):
    total: int = 0
    today: int = 0
    this_week: int = 0
    this_month: int = 0


class Streak(BaseModel):
    current: int = 0
    longest: int = 0
    last_active_date: dt.date | None = None


class UserStats(BaseModel):
    overall_progress: int = 0
    rank: Rank = Field(default_factory=Rank)
    time_spent: TimeSpent = Field(default_factory=TimeSpent)
    algorithms_completed: int = 0
    streak: Streak = Field(default_factory=Streak)
    average_accuracy: int = 0


class EarnedAchievement(BaseModel):
    id: str
    points: int
    earned_at: dt.datetime
    criteria: dict[str, Any] = Field(default_factory=dict)


class LearningPath(BaseModel):
    current_topic: str | None = None
    completed_topics: list[str] = Field(default_factory=list)
    topic_order: list[str] = Field(default_factory=list)


class DailyActivityRecord(BaseModel):
    date: dt.date
    time_spent: int = 0
    algorithms_attempted: int = 0
    algorithms_completed: int = 0
    points_earned: int = 0
    topics_studied: list[str] = Field(default_factory=list)
    sessions: int = 0


class Profile(BaseModel):
    first_name: str = ""
    last_name: str = ""
    bio: str = ""


class DailyProblemAttempt(BaseModel):
    run_count: int = 0
    is_locked: bool = False
    passed: bool = False
    points_awarded: bool = False
    last_results: list[dict[str, Any]] = Field(default_factory=list)
    last_submitted_code: str | None = None
    last_attempted_at: dt.datetime | None = None


class AssessmentAttempt(BaseModel):
    status: Literal["inprogress", "completed", "locked"] = "inprogress"
    strikes: int = 0
    score: int = 0
    answers: dict[str, Any] = Field(default_factory=dict)
    started_at: dt.datetime | None = None
    finished_at: dt.datetime | None = None


class UserSnapshot(BaseModel):
    """In-memory copy of one user's identity and progress document."""

    id: int | None = None
    username: str
    email: str
    role: str = "user"
    profile: Profile = Field(default_factory=Profile)
    progress: dict[str, TopicProgress] = Field(default_factory=dict)
    stats: UserStats = Field(default_factory=UserStats)
    achievements: list[EarnedAchievement] = Field(default_factory=list)
    learning_path: LearningPath = Field(default_factory=LearningPath)
    daily_activity: list[DailyActivityRecord] = Field(default_factory=list)
    daily_problem_attempts: dict[str, DailyProblemAttempt] = Field(default_factory=dict)
    assessment_attempts: dict[str, AssessmentAttempt] = Field(default_factory=dict)
    version: int | None = None

    def has_achievement(self, achievement_id: str) -> bool:
        return any(a.id == achievement_id for a in self.achievements)
