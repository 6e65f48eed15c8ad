"""Main topic / sub-topic structure of a course."""
import logging
import math

from study_tracker.errors import ValidationError
from study_tracker.models import STATUSES, Topic

logger = logging.getLogger(__name__)

TOPIC_FIELDS = {"name", "status", "hours_spent", "parent_topic_id"}


def validate_hierarchy(topics: list[Topic]) -> None:
    """Raise ValidationError unless every parent reference points at a main topic of the same set."""
    by_id = {t.id: t for t in topics}
    for topic in topics:
        if topic.parent_topic_id is None:
            continue
        if topic.parent_topic_id == topic.id:
            raise ValidationError(f"Topic {topic.id!r} cannot be its own parent")
        parent = by_id.get(topic.parent_topic_id)
        if parent is None:
            raise ValidationError(
                f"Topic {topic.id!r} references unknown parent {topic.parent_topic_id!r}"
            )
        if parent.course_id != topic.course_id:
            raise ValidationError(
                f"Topic {topic.id!r} and its parent {parent.id!r} belong to different courses"
            )
        if parent.parent_topic_id is not None:
            raise ValidationError(
                f"Topic {topic.id!r} is nested under sub-topic {parent.id!r}; only one level is allowed"
            )


def partition_topics(topics: list[Topic]) -> tuple[list[Topic], dict[str, list[Topic]]]:
    """Split topics into main topics and sub-topics grouped by parent id, keeping input order."""
    validate_hierarchy(topics)
    main_topics = []
    children = {}
    for topic in topics:
        if topic.parent_topic_id is None:
            main_topics.append(topic)
        else:
            children.setdefault(topic.parent_topic_id, []).append(topic)
    return main_topics, children


class TopicHierarchy:
    def __init__(self, topics: list[Topic]):
        self.topics = list(topics)
        self.main_topics, self._children = partition_topics(self.topics)
        logger.debug(
            "Built hierarchy: %d main topics, %d sub-topics",
            len(self.main_topics), len(self.topics) - len(self.main_topics),
        )

    def children_of(self, topic_id: str) -> list[Topic]:
        return list(self._children.get(topic_id, []))

    def __iter__(self):
        """Yield (main_topic, sub_topics) pairs in display order."""
        for topic in self.main_topics:
            yield topic, self.children_of(topic.id)


def filter_topics(topics: list[Topic], query: str) -> list[Topic]:
    """Topics whose name contains query, case-insensitive."""
    needle = query.lower()
    return [t for t in topics if needle in t.name.lower()]


def check_topic_fields(fields: dict) -> None:
    """Reject empty updates, unknown field names, unknown statuses and bad hours."""
    if not fields:
        raise ValidationError("No topic fields to update")
    unknown = set(fields) - TOPIC_FIELDS
    if unknown:
        raise ValidationError(f"Unknown topic fields: {', '.join(sorted(unknown))}")
    if "status" in fields and fields["status"] not in STATUSES:
        raise ValidationError(f"Invalid status: {fields['status']!r}")
    if "hours_spent" in fields:
        hours = fields["hours_spent"]
        if hours is None or not math.isfinite(hours) or hours < 0:
            raise ValidationError(f"hours_spent must be a non-negative number, got {hours!r}")
    if "name" in fields and not str(fields["name"]).strip():
        raise ValidationError("Topic name cannot be empty")


