"""Course completion percentage and per-topic weights."""
import logging
import math
from dataclasses import dataclass

from study_tracker.models import COMPLETED, STATUSES, Topic

logger = logging.getLogger(__name__)


@dataclass
class CourseSummary:
    progress: float
    total_hours: float
    completed_topics: int
    topic_count: int

    @property
    def display_progress(self) -> int:
        return display_progress(self.progress)


def display_progress(value: float) -> int:
    """Round half up, so 12.5% shows as 13%."""
    return math.floor(value + 0.5)


def compute_progress(topics: list[Topic]) -> float:
    """Unrounded completion percentage.

    Every topic, main or sub, weighs 100/N. Only completed topics count;
    in-progress earns nothing.
    """
    if not topics:
        return 0.0
    completed = sum(1 for t in topics if t.status == COMPLETED)
    return 100 * completed / len(topics)


def weight(topic_count: int) -> int:
    """Display weight of any single topic in a course with topic_count topics."""
    if topic_count <= 0:
        return 0
    return display_progress(100 / topic_count)


def compute_course_summary(topics: list[Topic]) -> CourseSummary:
    summary = CourseSummary(
        progress=compute_progress(topics),
        total_hours=sum(t.hours_spent for t in topics),
        completed_topics=sum(1 for t in topics if t.status == COMPLETED),
        topic_count=len(topics),
    )
    logger.debug(
        "Recomputed summary: %d/%d completed, %.1f%%, %.2fh",
        summary.completed_topics, summary.topic_count, summary.progress, summary.total_hours,
    )
    return summary


def status_counts(topics: list[Topic]) -> dict[str, int]:
    counts = {status: 0 for status in STATUSES}
    for t in topics:
        counts[t.status] = counts.get(t.status, 0) + 1
    return counts
