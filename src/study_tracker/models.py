"""Data classes for the study tracker domain model."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

STATUSES = (NOT_STARTED, IN_PROGRESS, COMPLETED)


@dataclass
class Topic:
    id: str
    course_id: str
    name: str
    status: str = NOT_STARTED
    hours_spent: float = 0.0
    parent_topic_id: Optional[str] = None

    @property
    def is_main(self) -> bool:
        return self.parent_topic_id is None


@dataclass
class Course:
    id: str
    name: str
    code: str
    exam_date: datetime
    # Derived from the course's topics, filled in by the engine
    progress: float = 0.0
    total_hours: float = 0.0
    topic_count: int = 0
    completed_topics: int = 0
    is_neglected: bool = False


@dataclass
class Notification:
    id: str
    kind: str
    title: str
    description: str
    urgent: bool
    course_id: str


@dataclass
class Classification:
    is_neglected: bool
    is_exam_soon: bool
    is_urgent_review: bool
    days_until_exam: int
