"""Conversion between ``users`` rows and in-memory snapshots."""

from __future__ import annotations

from pydantic import TypeAdapter

from learnstack.db.models import User
from learnstack.progress.models import (
    AssessmentAttempt,
    DailyActivityRecord,
    DailyProblemAttempt,
    EarnedAchievement,
    LearningPath,
    Profile,
    TopicProgress,
    UserSnapshot,
    UserStats,
)

_progress_adapter = TypeAdapter(dict[str, TopicProgress])
_achievements_adapter = TypeAdapter(list[EarnedAchievement])
_activity_adapter = TypeAdapter(list[DailyActivityRecord])
_daily_attempts_adapter = TypeAdapter(dict[str, DailyProblemAttempt])
_assessment_attempts_adapter = TypeAdapter(dict[str, AssessmentAttempt])


def snapshot_from_row(user: User) -> UserSnapshot:
    return UserSnapshot(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        profile=Profile(first_name=user.first_name or "", last_name=user.last_name or "", bio=user.bio or ""),
        progress=_progress_adapter.validate_python(user.progress or {}),
        stats=UserStats.model_validate(user.stats or {}),
        achievements=_achievements_adapter.validate_python(user.achievements or []),
        learning_path=LearningPath.model_validate(user.learning_path or {}),
        daily_activity=_activity_adapter.validate_python(user.daily_activity or []),
        daily_problem_attempts=_daily_attempts_adapter.validate_python(user.daily_problem_attempts or {}),
        assessment_attempts=_assessment_attempts_adapter.validate_python(user.assessment_attempts or {}),
        version=user.version,
    )


def apply_snapshot_to_row(snapshot: UserSnapshot, user: User) -> None:
    """Write the progress document back onto the row.

    Every JSON column is replaced with a fresh object so the ORM sees the
    change; the version column is bumped by the mapper on flush.
    """
    data = snapshot.model_dump(mode="json")
    user.first_name = snapshot.profile.first_name
    user.last_name = snapshot.profile.last_name
    user.bio = snapshot.profile.bio
    user.progress = data["progress"]
    user.stats = data["stats"]
    user.achievements = data["achievements"]
    user.learning_path = data["learning_path"]
    user.daily_activity = data["daily_activity"]
    user.daily_problem_attempts = data["daily_problem_attempts"]
    user.assessment_attempts = data["assessment_attempts"]


def new_user_row(snapshot: UserSnapshot) -> User:
    user = User(username=snapshot.username, email=snapshot.email, role=snapshot.role)
    apply_snapshot_to_row(snapshot, user)
    return user
