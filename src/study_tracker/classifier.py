"""Neglect and exam-urgency signals for a course."""
import math
from datetime import datetime, timedelta
from typing import Optional

from study_tracker.config import EngineConfig
from study_tracker.models import Classification, Course

SECONDS_PER_DAY = 86400


def days_until_exam(exam_date: datetime, now: datetime) -> int:
    """Whole days until the exam, rounded up: 0.1 days out counts as 1."""
    return math.ceil((exam_date - now).total_seconds() / SECONDS_PER_DAY)


def is_neglected(last_activity: datetime, now: datetime, neglect_days: int = 7) -> bool:
    return (now - last_activity) > timedelta(days=neglect_days)


def is_exam_soon(days: int, config: Optional[EngineConfig] = None) -> bool:
    config = config or EngineConfig()
    return 0 < days <= config.exam_soon_days


def is_urgent_review(days: int, progress: float, config: Optional[EngineConfig] = None) -> bool:
    config = config or EngineConfig()
    return 0 < days <= config.urgent_review_days and progress < config.low_progress_threshold


def classify(
    course: Course,
    now: datetime,
    last_activity: datetime,
    config: Optional[EngineConfig] = None,
) -> Classification:
    """Derive all course signals at once.

    Exams that are today-and-elapsed or in the past (days <= 0) never raise
    exam signals. Neglect is independent of the exam date.
    """
    config = config or EngineConfig()
    days = days_until_exam(course.exam_date, now)
    return Classification(
        is_neglected=is_neglected(last_activity, now, config.neglect_days),
        is_exam_soon=is_exam_soon(days, config),
        is_urgent_review=is_urgent_review(days, course.progress, config),
        days_until_exam=days,
    )
