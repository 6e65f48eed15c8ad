"""User-facing alerts derived from course state."""
import logging
from datetime import datetime
from typing import Iterable, Optional

from study_tracker.classifier import days_until_exam, is_exam_soon, is_urgent_review
from study_tracker.config import EngineConfig
from study_tracker.models import Course, Notification

logger = logging.getLogger(__name__)

EXAM = "exam"
NEGLECT = "neglect"
PROGRESS = "progress"


def notification_id(kind: str, course_id: str) -> str:
    return f"{kind}-{course_id}"


def _exam_reminder(course: Course, days: int) -> Notification:
    plural = "" if days == 1 else "s"
    return Notification(
        id=notification_id(EXAM, course.id),
        kind=EXAM,
        title="Exam Coming Up",
        description=f"{course.name} ({course.code}) exam in {days} day{plural}",
        urgent=True,
        course_id=course.id,
    )


def _neglect_warning(course: Course, neglect_days: int) -> Notification:
    return Notification(
        id=notification_id(NEGLECT, course.id),
        kind=NEGLECT,
        title="Neglected Course",
        description=f"You haven't studied {course.code} in over {neglect_days} days. Time to catch up!",
        urgent=False,
        course_id=course.id,
    )


def _urgent_review(course: Course) -> Notification:
    return Notification(
        id=notification_id(PROGRESS, course.id),
        kind=PROGRESS,
        title="Urgent Review",
        description=f"Exam soon for {course.code} but progress is low. Focus on this today!",
        urgent=True,
        course_id=course.id,
    )


def generate_notifications(
    courses: Iterable[Course],
    now: datetime,
    config: Optional[EngineConfig] = None,
) -> list[Notification]:
    """Build alerts for each course in input order.

    Per course the order is fixed: exam reminder, neglect warning, urgent
    review. The three are independent, so a course can raise any subset.
    Output depends only on the arguments.
    """
    config = config or EngineConfig()
    generated = []
    for course in courses:
        days = days_until_exam(course.exam_date, now)
        if is_exam_soon(days, config):
            generated.append(_exam_reminder(course, days))
        if course.is_neglected:
            generated.append(_neglect_warning(course, config.neglect_days))
        if is_urgent_review(days, course.progress, config):
            generated.append(_urgent_review(course))
    logger.debug("Generated %d notifications", len(generated))
    return generated


def filter_unread(notifications: list[Notification], read_ids: Iterable[str]) -> list[Notification]:
    """Drop acknowledged notifications. The input list is left untouched."""
    read = set(read_ids)
    return [n for n in notifications if n.id not in read]
