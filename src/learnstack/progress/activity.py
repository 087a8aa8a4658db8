"""Streak and daily-activity bookkeeping.

Calendar days are UTC days. Every call updates the streak, including calls
with an all-zero delta (logins), so callers never skip it for lack of content.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from pydantic import BaseModel, Field

from learnstack.progress.models import DailyActivityRecord, UserSnapshot
from learnstack.progress.rank import compute_rank


class ActivityDelta(BaseModel):
    time_spent: int = Field(default=0, ge=0)  # minutes
    algorithms_attempted: int = Field(default=0, ge=0)
    algorithms_completed: int = Field(default=0, ge=0)
    points_earned: int = Field(default=0, ge=0)
    topic: str | None = None
    session: bool = False


def utc_today(now: datetime | None = None) -> date:
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).date()


def update_streak(snapshot: UserSnapshot, today: date) -> None:
    streak = snapshot.stats.streak
    last = streak.last_active_date
    if last is None:
        streak.current = 1
    else:
        days_diff = (today - last).days
        if days_diff <= 0:
            # Same day, or a clock earlier than the last recorded day.
            return
        streak.current = streak.current + 1 if days_diff == 1 else 1
    streak.longest = max(streak.longest, streak.current)
    streak.last_active_date = today


def apply_activity(
    snapshot: UserSnapshot,
    delta: ActivityDelta,
    now: datetime | None = None,
    retention_days: int = 90,
) -> DailyActivityRecord:
    """Fold ``delta`` into today's activity record and refresh streak and time totals."""
    today = utc_today(now)

    record = next((r for r in reversed(snapshot.daily_activity) if r.date == today), None)
    if record is None:
        record = DailyActivityRecord(date=today)
        snapshot.daily_activity.append(record)
        snapshot.daily_activity.sort(key=lambda r: r.date)

    record.time_spent += delta.time_spent
    record.algorithms_attempted += delta.algorithms_attempted
    record.algorithms_completed += delta.algorithms_completed
    record.points_earned += delta.points_earned
    if delta.topic and delta.topic not in record.topics_studied:
        record.topics_studied.append(delta.topic)
    if delta.session:
        record.sessions += 1

    cutoff = today - timedelta(days=retention_days)
    snapshot.daily_activity = [r for r in snapshot.daily_activity if r.date > cutoff]

    stats = snapshot.stats
    week_start = today - timedelta(days=today.weekday())
    month_start = today.replace(day=1)
    stats.time_spent.total += delta.time_spent
    stats.time_spent.today = record.time_spent
    stats.time_spent.this_week = sum(r.time_spent for r in snapshot.daily_activity if week_start <= r.date <= today)
    stats.time_spent.this_month = sum(
        r.time_spent for r in snapshot.daily_activity if month_start <= r.date <= today
    )

    if delta.points_earned:
        stats.rank.points += delta.points_earned
        stats.rank.level = compute_rank(stats.rank.points)

    update_streak(snapshot, today)
    return record
