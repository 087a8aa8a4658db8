"""Catalog seed data: two subjects and their starter topics.

Seeding only inserts missing rows, so admin edits (global locks, reordering)
survive restarts.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.db.models import Algorithm, Subject, Topic

logger = logging.getLogger(__name__)

SUBJECT_SEED_DATA: list[dict] = [
    {
        "name": "DSA Visualizer",
        "description": "Step through classic data structures and algorithms visually",
        "icon": "chart",
        "color": "blue",
        "sort_order": 1,
    },
    {
        "name": "C Programming",
        "description": "Learn the fundamentals of C programming",
        "icon": "code",
        "color": "gray",
        "sort_order": 2,
    },
]

TOPIC_SEED_DATA: list[dict] = [
    {
        "id": "searching",
        "subject": "DSA Visualizer",
        "name": "Searching Algorithms",
        "description": "Learn various searching techniques to find elements efficiently",
        "order": 1,
        "estimated_time": 8,
        "difficulty": "beginner",
        "prerequisites": [],
        "algorithms": [
            {"id": "linearSearch", "name": "Linear Search", "difficulty": "easy", "points": 50, "prerequisites": []},
            {
                "id": "binarySearch",
                "name": "Binary Search",
                "difficulty": "easy",
                "points": 75,
                "prerequisites": ["linearSearch"],
            },
        ],
    },
    {
        "id": "sorting",
        "subject": "DSA Visualizer",
        "name": "Sorting Algorithms",
        "description": "Master different sorting techniques and their applications",
        "order": 2,
        "estimated_time": 12,
        "difficulty": "beginner",
        "prerequisites": ["searching"],
        "algorithms": [
            {"id": "bubbleSort", "name": "Bubble Sort", "difficulty": "easy", "points": 50, "prerequisites": []},
            {"id": "selectionSort", "name": "Selection Sort", "difficulty": "easy", "points": 50, "prerequisites": []},
        ],
    },
    {
        "id": "cBasics",
        "subject": "C Programming",
        "name": "C Programming Basics",
        "description": "Learn the fundamentals of C programming",
        "order": 4,
        "estimated_time": 10,
        "difficulty": "beginner",
        "prerequisites": [],
        "algorithms": [
            {"id": "cIntro", "name": "Introduction to C", "difficulty": "easy", "points": 10, "prerequisites": []},
            {
                "id": "cVariables",
                "name": "Variables & Data Types",
                "difficulty": "easy",
                "points": 15,
                "prerequisites": ["cIntro"],
            },
        ],
    },
]


async def seed_catalog(
    db: AsyncSession,
    subjects: list[dict] | None = None,
    topics: list[dict] | None = None,
) -> int:
    """Insert missing subjects and topics. Returns number of topics inserted."""
    subjects = SUBJECT_SEED_DATA if subjects is None else subjects
    topics = TOPIC_SEED_DATA if topics is None else topics

    existing_subjects = set((await db.execute(select(Subject.name))).scalars())
    for subject_data in subjects:
        if subject_data["name"] not in existing_subjects:
            db.add(Subject(**subject_data))
    await db.flush()

    existing_topics = set((await db.execute(select(Topic.id))).scalars())
    inserted = 0
    for topic_data in topics:
        if topic_data["id"] in existing_topics:
            continue
        data = dict(topic_data)
        algorithms = data.pop("algorithms", [])
        topic = Topic(**data)
        topic.algorithms = [Algorithm(position=i, **algo) for i, algo in enumerate(algorithms)]
        db.add(topic)
        inserted += 1

    await db.commit()
    logger.info("Seeded %d catalog topics", inserted)
    return inserted
