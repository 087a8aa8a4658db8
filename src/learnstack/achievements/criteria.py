"""Achievement criteria evaluators.

Each evaluator receives the template's criteria ``value``, the user snapshot
and the evaluation time. The set is closed: an unknown type, or a value of
the wrong shape, evaluates to False and is logged instead of raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any

from learnstack.progress.activity import utc_today
from learnstack.progress.models import AlgorithmProgress, UserSnapshot

logger = logging.getLogger(__name__)

Evaluator = Callable[[Any, UserSnapshot, datetime], bool]

# Criteria types that only make sense on a specific event; the engine skips
# them unless the caller passes that event.
EVENT_GATED: dict[str, str] = {
    "first_login": "login",
    "first_completion": "completion",
}


def _completed_algorithms(snapshot: UserSnapshot) -> Iterator[AlgorithmProgress]:
    for topic_progress in snapshot.progress.values():
        for algo in topic_progress.algorithms.values():
            if algo.completed:
                yield algo


def _complete_topic(value: Any, snapshot: UserSnapshot, _now: datetime) -> bool:
    entry = snapshot.progress.get(value)
    return entry is not None and entry.completion == 100


def _algorithms_completed(value: Any, snapshot: UserSnapshot, _now: datetime) -> bool:
    return snapshot.stats.algorithms_completed >= int(value)


def _streak(value: Any, snapshot: UserSnapshot, _now: datetime) -> bool:
    return snapshot.stats.streak.current >= int(value)


def _reach_rank(value: Any, snapshot: UserSnapshot, _now: datetime) -> bool:
    return snapshot.stats.rank.level == value


def _total_points(value: Any, snapshot: UserSnapshot, _now: datetime) -> bool:
    return snapshot.stats.rank.points >= int(value)


def _perfect_accuracy(value: Any, snapshot: UserSnapshot, _now: datetime) -> bool:
    return any(
        a.attempts_practice > 0 and a.accuracy_practice == int(value) for a in _completed_algorithms(snapshot)
    )


def _time_limit(value: Any, snapshot: UserSnapshot, _now: datetime) -> bool:
    seconds = value["seconds"]
    return any(
        a.best_time_practice is not None and a.best_time_practice <= seconds for a in _completed_algorithms(snapshot)
    )


def _daily_time(value: Any, snapshot: UserSnapshot, _now: datetime) -> bool:
    minutes, days = int(value["minutes"]), int(value["days"])
    if days <= 0 or len(snapshot.daily_activity) < days:
        return False
    return all(r.time_spent >= minutes for r in snapshot.daily_activity[-days:])


def _monthly_time(value: Any, snapshot: UserSnapshot, now: datetime) -> bool:
    month_start = utc_today(now).replace(day=1)
    total = sum(r.time_spent for r in snapshot.daily_activity if r.date >= month_start)
    return total >= int(value)


def _profile_complete(_value: Any, snapshot: UserSnapshot, _now: datetime) -> bool:
    profile = snapshot.profile
    return bool(profile.first_name.strip() and profile.last_name.strip() and profile.bio.strip())


def _always(_value: Any, _snapshot: UserSnapshot, _now: datetime) -> bool:
    return True


EVALUATORS: dict[str, Evaluator] = {
    "complete_topic": _complete_topic,
    "algorithms_completed": _algorithms_completed,
    "streak": _streak,
    "reach_rank": _reach_rank,
    "total_points": _total_points,
    "perfect_accuracy": _perfect_accuracy,
    "time_limit": _time_limit,
    "daily_time": _daily_time,
    "monthly_time": _monthly_time,
    "profile_complete": _profile_complete,
    "first_login": _always,
    "first_completion": _always,
}


def evaluate_criteria(criteria: dict[str, Any], snapshot: UserSnapshot, now: datetime) -> bool:
    """Evaluate one template's criteria; never raises."""
    kind = criteria.get("type")
    evaluator = EVALUATORS.get(kind) if isinstance(kind, str) else None
    if evaluator is None:
        logger.warning("Unknown achievement criteria type: %s", kind)
        return False
    try:
        return bool(evaluator(criteria.get("value"), snapshot, now))
    except (KeyError, TypeError, ValueError):
        logger.warning("Malformed %s criteria value: %r", kind, criteria.get("value"), exc_info=True)
        return False
