"""Achievement template seed data.

Templates whose criteria type has no evaluator yet (speed_completion,
high_accuracy_streak, efficiency_combo, perfect_streak, time_range,
weekend_completion, comeback, perfect_topic) are seeded like the rest and
never fire.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.db.models import AchievementTemplate

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict] = [
    # Learning
    {
        "id": "search_master",
        "name": "Search Master",
        "description": "Complete all searching algorithms",
        "icon": "search",
        "category": "learning",
        "points": 500,
        "rarity": "epic",
        "criteria": {"type": "complete_topic", "value": "searching"},
    },
    {
        "id": "sort_specialist",
        "name": "Sort Specialist",
        "description": "Complete all sorting algorithms",
        "icon": "bar-chart",
        "category": "learning",
        "points": 600,
        "rarity": "epic",
        "criteria": {"type": "complete_topic", "value": "sorting"},
    },
    {
        "id": "algorithm_explorer",
        "name": "Algorithm Explorer",
        "description": "Complete your first algorithm",
        "icon": "compass",
        "category": "learning",
        "points": 50,
        "rarity": "common",
        "criteria": {"type": "first_completion", "value": 1},
    },
    {
        "id": "rookie_learner",
        "name": "Rookie Learner",
        "description": "Complete 5 algorithms",
        "icon": "user",
        "category": "learning",
        "points": 100,
        "rarity": "common",
        "criteria": {"type": "algorithms_completed", "value": 5},
    },
    {
        "id": "dedicated_student",
        "name": "Dedicated Student",
        "description": "Complete 25 algorithms",
        "icon": "book-open",
        "category": "learning",
        "points": 300,
        "rarity": "rare",
        "criteria": {"type": "algorithms_completed", "value": 25},
    },
    {
        "id": "algorithm_master",
        "name": "Algorithm Master",
        "description": "Complete 64 algorithms",
        "icon": "crown",
        "category": "mastery",
        "points": 2000,
        "rarity": "legendary",
        "criteria": {"type": "algorithms_completed", "value": 64},
    },
    # Performance
    {
        "id": "speed_demon",
        "name": "Speed Demon",
        "description": "Complete 10 algorithms in under 30 seconds each",
        "icon": "zap",
        "category": "performance",
        "points": 300,
        "rarity": "rare",
        "criteria": {"type": "speed_completion", "value": 10},
    },
    {
        "id": "lightning_fast",
        "name": "Lightning Fast",
        "description": "Complete any algorithm in under 15 seconds",
        "icon": "flash",
        "category": "performance",
        "points": 150,
        "rarity": "rare",
        "criteria": {"type": "time_limit", "value": {"seconds": 15}},
    },
    {
        "id": "precision_master",
        "name": "Precision Master",
        "description": "Complete an algorithm with 100% accuracy",
        "icon": "target",
        "category": "performance",
        "points": 100,
        "rarity": "common",
        "criteria": {"type": "perfect_accuracy", "value": 100},
    },
    {
        "id": "accuracy_legend",
        "name": "Accuracy Legend",
        "description": "Keep 95% accuracy across 20 algorithms",
        "icon": "award",
        "category": "performance",
        "points": 400,
        "rarity": "epic",
        "criteria": {"type": "high_accuracy_streak", "value": {"accuracy": 95, "count": 20}},
    },
    {
        "id": "efficient_coder",
        "name": "Efficient Coder",
        "description": "Reach 90% accuracy in under 45 seconds five times",
        "icon": "cpu",
        "category": "performance",
        "points": 250,
        "rarity": "rare",
        "criteria": {"type": "efficiency_combo", "value": {"accuracy": 90, "time": 45, "count": 5}},
    },
    {
        "id": "no_mistakes",
        "name": "No Mistakes",
        "description": "Ten perfect practice runs in a row",
        "icon": "check-circle",
        "category": "performance",
        "points": 350,
        "rarity": "epic",
        "criteria": {"type": "perfect_streak", "value": 10},
    },
    # Consistency
    {
        "id": "rising_star",
        "name": "Rising Star",
        "description": "Maintain a 3-day learning streak",
        "icon": "star",
        "category": "consistency",
        "points": 100,
        "rarity": "common",
        "criteria": {"type": "streak", "value": 3},
    },
    {
        "id": "consistent_learner",
        "name": "Consistent Learner",
        "description": "Maintain a 7-day learning streak",
        "icon": "calendar",
        "category": "consistency",
        "points": 250,
        "rarity": "rare",
        "criteria": {"type": "streak", "value": 7},
    },
    {
        "id": "dedication_master",
        "name": "Dedication Master",
        "description": "Maintain a 30-day learning streak",
        "icon": "flame",
        "category": "consistency",
        "points": 500,
        "rarity": "epic",
        "criteria": {"type": "streak", "value": 30},
    },
    {
        "id": "unstoppable_force",
        "name": "Unstoppable Force",
        "description": "Maintain a 100-day learning streak",
        "icon": "infinity",
        "category": "consistency",
        "points": 1000,
        "rarity": "legendary",
        "criteria": {"type": "streak", "value": 100},
    },
    {
        "id": "daily_grind",
        "name": "Daily Grind",
        "description": "Study at least 30 minutes a day for 7 days",
        "icon": "clock",
        "category": "consistency",
        "points": 200,
        "rarity": "common",
        "criteria": {"type": "daily_time", "value": {"minutes": 30, "days": 7}},
    },
    {
        "id": "time_commitment",
        "name": "Time Commitment",
        "description": "Study 10 hours in one month",
        "icon": "hourglass",
        "category": "consistency",
        "points": 300,
        "rarity": "rare",
        "criteria": {"type": "monthly_time", "value": 600},
    },
    # Rank
    {
        "id": "bronze_rank",
        "name": "Bronze Achiever",
        "description": "Reach Bronze rank",
        "icon": "medal",
        "category": "mastery",
        "points": 100,
        "rarity": "common",
        "criteria": {"type": "reach_rank", "value": "Bronze"},
    },
    {
        "id": "silver_rank",
        "name": "Silver Champion",
        "description": "Reach Silver rank",
        "icon": "award",
        "category": "mastery",
        "points": 300,
        "rarity": "rare",
        "criteria": {"type": "reach_rank", "value": "Silver"},
    },
    {
        "id": "gold_rank",
        "name": "Gold Master",
        "description": "Reach Gold rank",
        "icon": "trophy",
        "category": "mastery",
        "points": 500,
        "rarity": "epic",
        "criteria": {"type": "reach_rank", "value": "Gold"},
    },
    {
        "id": "platinum_rank",
        "name": "Platinum Legend",
        "description": "Reach Platinum rank",
        "icon": "gem",
        "category": "mastery",
        "points": 800,
        "rarity": "legendary",
        "criteria": {"type": "reach_rank", "value": "Platinum"},
    },
    {
        "id": "diamond_rank",
        "name": "Diamond Elite",
        "description": "Reach Diamond rank",
        "icon": "diamond",
        "category": "mastery",
        "points": 1200,
        "rarity": "legendary",
        "criteria": {"type": "reach_rank", "value": "Diamond"},
    },
    {
        "id": "point_collector",
        "name": "Point Collector",
        "description": "Earn 1,000 points",
        "icon": "dollar-sign",
        "category": "mastery",
        "points": 200,
        "rarity": "common",
        "criteria": {"type": "total_points", "value": 1000},
    },
    {
        "id": "point_hoarder",
        "name": "Point Hoarder",
        "description": "Earn 5,000 points",
        "icon": "coins",
        "category": "mastery",
        "points": 500,
        "rarity": "epic",
        "criteria": {"type": "total_points", "value": 5000},
    },
    # Special
    {
        "id": "night_owl",
        "name": "Night Owl",
        "description": "Complete 5 algorithms between 10 PM and 6 AM",
        "icon": "moon",
        "category": "special",
        "points": 100,
        "rarity": "rare",
        "criteria": {"type": "time_range", "value": {"start": 22, "end": 6, "count": 5}},
    },
    {
        "id": "early_bird",
        "name": "Early Bird",
        "description": "Complete 5 algorithms between 5 AM and 8 AM",
        "icon": "sunrise",
        "category": "special",
        "points": 100,
        "rarity": "rare",
        "criteria": {"type": "time_range", "value": {"start": 5, "end": 8, "count": 5}},
    },
    {
        "id": "weekend_warrior",
        "name": "Weekend Warrior",
        "description": "Complete 10 algorithms on weekends",
        "icon": "weekend",
        "category": "special",
        "points": 150,
        "rarity": "common",
        "criteria": {"type": "weekend_completion", "value": 10},
    },
    {
        "id": "comeback_kid",
        "name": "Comeback Kid",
        "description": "Complete 5 algorithms after a 7-day break",
        "icon": "refresh",
        "category": "special",
        "points": 200,
        "rarity": "rare",
        "criteria": {"type": "comeback", "value": {"break_days": 7, "algorithms": 5}},
    },
    {
        "id": "perfectionist",
        "name": "Perfectionist",
        "description": "Finish a whole topic with perfect accuracy",
        "icon": "check-square",
        "category": "special",
        "points": 400,
        "rarity": "epic",
        "criteria": {"type": "perfect_topic", "value": 100},
    },
    {
        "id": "first_login",
        "name": "Welcome Aboard!",
        "description": "Log in for the first time",
        "icon": "log-in",
        "category": "special",
        "points": 25,
        "rarity": "common",
        "criteria": {"type": "first_login", "value": 1},
    },
    {
        "id": "profile_complete",
        "name": "Profile Master",
        "description": "Fill in your first name, last name and bio",
        "icon": "user-check",
        "category": "special",
        "points": 50,
        "rarity": "common",
        "criteria": {"type": "profile_complete", "value": True},
    },
]


async def seed_achievements(db: AsyncSession, templates: list[dict] | None = None) -> int:
    """Upsert achievement templates by id. Returns number of templates seeded."""
    templates = ACHIEVEMENT_SEED_DATA if templates is None else templates
    for sort_order, data in enumerate(templates, start=1):
        row = {"is_active": True, "sort_order": sort_order, **data}
        await db.merge(AchievementTemplate(**row))
    await db.commit()
    logger.info("Seeded %d achievement templates", len(templates))
    return len(templates)
