"""End-to-end test of the core workflow."""
import asyncio
from datetime import datetime, timedelta

from study_tracker.classifier import classify
from study_tracker.coordinator import OptimisticCoordinator
from study_tracker.courses import load_courses
from study_tracker.db import AsyncStore, SqliteStore, init_db
from study_tracker.notifications import filter_unread, generate_notifications
from study_tracker.progress import compute_course_summary


def test_four_topics_one_completed_exam_in_five_days(tmp_db):
    init_db(tmp_db)
    store = SqliteStore(tmp_db)
    now = datetime.now()
    course = store.create_course("Linear Algebra", "MATH201", now + timedelta(days=5))
    topics = [store.create_topic(course.id, name) for name in ("Vectors", "Matrices", "Eigen")]
    store.create_topic(course.id, "Determinants", parent_topic_id=topics[1].id)

    coordinator = OptimisticCoordinator(AsyncStore(store))

    async def study():
        await coordinator.refresh(course.id)
        await coordinator.toggle_status(course.id, topics[0].id)
        await coordinator.toggle_status(course.id, topics[0].id)
        await coordinator.log_minutes(course.id, topics[0].id, 25)

    asyncio.run(study())

    summary = compute_course_summary(store.list_topics(course.id))
    assert summary.display_progress == 25
    assert summary.completed_topics == 1
    assert coordinator.summary(course.id) == summary

    [loaded] = load_courses(store, now)
    assert loaded.progress == 25
    assert not loaded.is_neglected

    signals = classify(loaded, now, store.last_activity(course.id))
    assert signals.is_exam_soon
    assert signals.is_urgent_review
    assert signals.days_until_exam == 5

    notifications = generate_notifications([loaded], now)
    assert [n.id for n in notifications] == [f"exam-{course.id}", f"progress-{course.id}"]

    store.mark_read([notifications[0].id])
    unread = filter_unread(generate_notifications([loaded], now), store.read_ids())
    assert [n.kind for n in unread] == ["progress"]
