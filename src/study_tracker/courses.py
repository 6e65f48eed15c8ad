"""Fill in a course's derived fields from its topics and activity."""
from dataclasses import replace
from datetime import datetime
from typing import Optional

from study_tracker.classifier import is_neglected
from study_tracker.config import EngineConfig
from study_tracker.db import SqliteStore
from study_tracker.hierarchy import validate_hierarchy
from study_tracker.models import Course, Topic
from study_tracker.progress import compute_course_summary


def with_derived_fields(
    course: Course,
    topics: list[Topic],
    now: datetime,
    last_activity: Optional[datetime],
    config: Optional[EngineConfig] = None,
) -> Course:
    """Return a copy of course with progress, hours, counts and neglect recomputed.

    A course with no recorded activity at all is not considered neglected.
    """
    config = config or EngineConfig()
    validate_hierarchy(topics)
    summary = compute_course_summary(topics)
    return replace(
        course,
        progress=summary.progress,
        total_hours=summary.total_hours,
        topic_count=summary.topic_count,
        completed_topics=summary.completed_topics,
        is_neglected=(
            last_activity is not None and is_neglected(last_activity, now, config.neglect_days)
        ),
    )


def load_courses(store: SqliteStore, now: datetime, config: Optional[EngineConfig] = None) -> list[Course]:
    return [
        with_derived_fields(c, store.list_topics(c.id), now, store.last_activity(c.id), config)
        for c in store.list_courses()
    ]


def filter_courses(courses: list[Course], query: str) -> list[Course]:
    """Courses whose name or code contains query, case-insensitive."""
    needle = query.lower()
    return [c for c in courses if needle in c.name.lower() or needle in c.code.lower()]
