"""ORM models.

The catalog (subjects, topics, algorithms) and the achievement templates are
admin-authored. Each user row holds the whole progress document split across
JSON columns, guarded by an integer version column for optimistic writes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnstack.db.base import Base, BigIntPK, JSONType


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class Subject(Base):
    """Maps to the 'subjects' table."""

    __tablename__ = "subjects"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")


class Topic(Base):
    """Maps to the 'topics' table."""

    __tablename__ = "topics"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    subject: Mapped[str] = mapped_column(String(100), ForeignKey("subjects.name"), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    estimated_time: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, server_default="beginner")
    prerequisites: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    is_globally_locked: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    algorithms: Mapped[list[Algorithm]] = relationship(
        "Algorithm",
        back_populates="topic",
        order_by="Algorithm.position",
        cascade="all, delete-orphan",
    )


class Algorithm(Base):
    """Maps to the 'algorithms' table. Ids are unique within their topic."""

    __tablename__ = "algorithms"

    topic_id: Mapped[str] = mapped_column(String(64), ForeignKey("topics.id", ondelete="CASCADE"), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, server_default="easy")
    points: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    prerequisites: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    is_globally_locked: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    position: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    topic: Mapped[Topic] = relationship("Topic", back_populates="algorithms")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table.

    The progress document columns are only written through the progress
    engine; ``version`` makes every flush a compare-and-set.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="user")
    first_name: Mapped[str] = mapped_column(String(64), nullable=False, server_default="")
    last_name: Mapped[str] = mapped_column(String(64), nullable=False, server_default="")
    bio: Mapped[str] = mapped_column(String(500), nullable=False, server_default="")

    progress: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    stats: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    achievements: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    learning_path: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    daily_activity: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    daily_problem_attempts: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    assessment_attempts: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012


# ---------------------------------------------------------------------------
# Gamification
# ---------------------------------------------------------------------------


class AchievementTemplate(Base):
    """Maps to the 'achievement_templates' table."""

    __tablename__ = "achievement_templates"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(32), nullable=False, server_default="")
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    rarity: Mapped[str] = mapped_column(String(16), nullable=False, server_default="common")
    criteria: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")


class Leaderboard(Base):
    """Maps to the 'leaderboards' table. One row per board type.

    Versioned like ``users``: regenerations and single-user upserts both
    rewrite ``rankings``, and neither may overwrite the other.
    """

    __tablename__ = "leaderboards"

    type: Mapped[str] = mapped_column(String(16), primary_key=True)
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rankings: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012


# ---------------------------------------------------------------------------
# Practice content
# ---------------------------------------------------------------------------


class DailyProblem(Base):
    """Maps to the 'daily_problems' table."""

    __tablename__ = "daily_problems"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    subject: Mapped[str] = mapped_column(String(100), ForeignKey("subjects.name"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    boilerplate_code: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    solution_code: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String(32), nullable=False, server_default="python")
    language_version: Mapped[str] = mapped_column(String(16), nullable=False, server_default="*")
    test_cases: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    points_for_attempt: Mapped[int] = mapped_column(Integer, nullable=False, server_default="20")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Assessment(Base):
    """Maps to the 'assessments' table (mentor-authored tests)."""

    __tablename__ = "assessments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    subject: Mapped[str | None] = mapped_column(String(100), ForeignKey("subjects.name"), nullable=True)
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Doubts
# ---------------------------------------------------------------------------


class DoubtThread(Base):
    """Maps to the 'doubt_threads' table.

    ``status`` is new (queued), in-progress (claimed by ``mentor_id``) or
    resolved. Resolved threads are purged once ``resolved_at`` is older than
    the retention window.
    """

    __tablename__ = "doubt_threads"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    mentor_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    subject: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    topic_id: Mapped[str] = mapped_column(String(64), nullable=False)
    initial_question: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="new", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class DoubtMessage(Base):
    """Maps to the 'doubt_messages' table."""

    __tablename__ = "doubt_messages"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    thread_id: Mapped[int] = mapped_column(
        ForeignKey("doubt_threads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    sender_role: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
