"""Optimistic topic updates with rollback on failed writes."""
import asyncio
import logging
from dataclasses import replace
from typing import Protocol

from study_tracker.errors import ValidationError
from study_tracker.hierarchy import check_topic_fields, validate_hierarchy
from study_tracker.models import COMPLETED, IN_PROGRESS, NOT_STARTED, Course, Topic
from study_tracker.progress import CourseSummary, compute_course_summary

logger = logging.getLogger(__name__)

_NEXT_STATUS = {
    NOT_STARTED: IN_PROGRESS,
    IN_PROGRESS: COMPLETED,
    COMPLETED: NOT_STARTED,
}


class TopicStore(Protocol):
    async def list_courses(self) -> list[Course]: ...

    async def list_topics(self, course_id: str) -> list[Topic]: ...

    async def update_topic(self, course_id: str, topic_id: str, fields: dict) -> Topic: ...

    async def delete_topic(self, course_id: str, topic_id: str) -> None: ...


def next_status(status: str) -> str:
    """One step of not_started -> in_progress -> completed -> not_started."""
    try:
        return _NEXT_STATUS[status]
    except KeyError:
        raise ValidationError(f"Invalid status: {status!r}") from None


class OptimisticCoordinator:
    """Keeps the local topic collections and applies writes to them ahead of the store.

    Mutations on the same topic are serialized; a second one waits until the
    first has committed or rolled back before taking its own snapshot.
    """

    def __init__(self, store: TopicStore):
        self.store = store
        self._topics: dict[str, list[Topic]] = {}
        # Bumped on every local change, to detect concurrent edits within a course
        self._versions: dict[str, int] = {}
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    def load(self, course_id: str, topics: list[Topic]) -> None:
        validate_hierarchy(topics)
        self._set(course_id, [replace(t) for t in topics])

    async def refresh(self, course_id: str) -> list[Topic]:
        topics = await self.store.list_topics(course_id)
        self.load(course_id, topics)
        return self.topics(course_id)

    def topics(self, course_id: str) -> list[Topic]:
        return [replace(t) for t in self._topics.get(course_id, [])]

    def summary(self, course_id: str) -> CourseSummary:
        return compute_course_summary(self._topics.get(course_id, []))

    def _set(self, course_id: str, topics: list[Topic]) -> None:
        self._topics[course_id] = topics
        self._versions[course_id] = self._versions.get(course_id, 0) + 1

    def _lock(self, course_id: str, topic_id: str) -> asyncio.Lock:
        key = (course_id, topic_id)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def _find(self, course_id: str, topic_id: str) -> Topic:
        for topic in self._topics.get(course_id, []):
            if topic.id == topic_id:
                return topic
        raise ValidationError(f"Topic {topic_id!r} is not loaded for course {course_id!r}")

    def _replace_topic(self, course_id: str, updated: Topic) -> None:
        self._set(course_id, [updated if t.id == updated.id else t for t in self._topics[course_id]])

    async def apply_optimistic(self, course_id: str, topic_id: str, fields: dict) -> Topic:
        """Show the change locally now, then commit it or roll it back.

        On any write failure the course's topics are restored from the snapshot
        and the error is re-raised unchanged. Nothing is retried.
        """
        check_topic_fields(fields)
        return await self._mutate(course_id, topic_id, lambda topic: fields)

    async def _mutate(self, course_id: str, topic_id: str, make_fields) -> Topic:
        # make_fields runs under the topic lock, so it sees the last resolved state
        async with self._lock(course_id, topic_id):
            snapshot = self.topics(course_id)
            pre_image = replace(self._find(course_id, topic_id))
            fields = make_fields(pre_image)
            check_topic_fields(fields)
            optimistic = replace(pre_image, **fields)
            validate_hierarchy([optimistic if t.id == topic_id else t for t in snapshot])

            self._replace_topic(course_id, optimistic)
            version = self._versions[course_id]
            logger.debug("Applied optimistic update to %s/%s: %s", course_id, topic_id, fields)

            try:
                committed = await self.store.update_topic(course_id, topic_id, fields)
            except Exception as e:
                # Any failed write, whatever its kind, leaves no optimistic state behind
                self._rollback(course_id, version, snapshot, pre_image)
                logger.warning("Rolled back update to %s/%s: %s", course_id, topic_id, e)
                raise

            self._replace_topic(course_id, committed)
            summary = self.summary(course_id)
            logger.info(
                "Committed update to %s/%s, course progress now %d%%",
                course_id, topic_id, summary.display_progress,
            )
            return replace(committed)

    def _rollback(self, course_id: str, version: int, snapshot: list[Topic], pre_image: Topic) -> None:
        if self._versions[course_id] == version:
            self._set(course_id, snapshot)
        else:
            # Other topics in this course changed meanwhile; keep their state
            self._replace_topic(course_id, pre_image)

    async def toggle_status(self, course_id: str, topic_id: str) -> Topic:
        return await self._mutate(
            course_id, topic_id, lambda topic: {"status": next_status(topic.status)}
        )

    async def log_minutes(self, course_id: str, topic_id: str, minutes: float) -> Topic:
        """Add a finished study session to the topic's hours."""
        if minutes <= 0:
            raise ValidationError(f"minutes must be positive, got {minutes!r}")
        return await self._mutate(
            course_id, topic_id,
            lambda topic: {"hours_spent": round(topic.hours_spent + minutes / 60, 2)},
        )

    async def delete_topic(self, course_id: str, topic_id: str) -> None:
        """Remove a topic and its sub-topics once the store confirms."""
        async with self._lock(course_id, topic_id):
            await self.store.delete_topic(course_id, topic_id)
            remaining = [
                t for t in self._topics.get(course_id, [])
                if t.id != topic_id and t.parent_topic_id != topic_id
            ]
            self._set(course_id, remaining)
            logger.info("Deleted topic %s/%s", course_id, topic_id)
