"""Tests for data model classes."""
from datetime import datetime

from study_tracker.models import Course, Notification, Topic, STATUSES


def test_topic_defaults():
    t = Topic(id="t1", course_id="c1", name="Limits")
    assert t.status == "not_started"
    assert t.hours_spent == 0.0
    assert t.parent_topic_id is None
    assert t.is_main


def test_sub_topic_is_not_main():
    t = Topic(id="t2", course_id="c1", name="One-sided limits", parent_topic_id="t1")
    assert not t.is_main


def test_course_derived_defaults():
    c = Course(id="c1", name="Calculus", code="MATH101", exam_date=datetime(2026, 12, 1))
    assert c.progress == 0.0
    assert c.total_hours == 0.0
    assert c.topic_count == 0
    assert c.completed_topics == 0
    assert c.is_neglected is False


def test_notification_creation():
    n = Notification(id="exam-c1", kind="exam", title="Exam Coming Up",
                     description="soon", urgent=True, course_id="c1")
    assert n.id == "exam-c1"
    assert n.urgent


def test_statuses_order():
    assert STATUSES == ("not_started", "in_progress", "completed")
