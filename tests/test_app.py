import asyncio
from datetime import datetime, timedelta
from unittest.mock import patch

from study_tracker.app import (
    cmd_add_course, cmd_alerts, cmd_courses, cmd_delete_course, cmd_edit, cmd_read,
    cmd_settings, cmd_toggle, ordered_topics, progress_bar,
)
from study_tracker.config import EngineConfig, load_config
from study_tracker.coordinator import OptimisticCoordinator
from study_tracker.db import AsyncStore, SqliteStore, init_db


def test_progress_bar_width():
    assert progress_bar(50).count("█") == 10
    assert progress_bar(0).count("░") == 20


def test_ordered_topics_puts_subs_after_parent(make_topic):
    topics = [make_topic("a"), make_topic("b"), make_topic("a1", parent="a")]
    assert [t.id for t in ordered_topics(topics)] == ["a", "a1", "b"]


def test_cmd_add_course(tmp_db):
    init_db(tmp_db)
    store = SqliteStore(tmp_db)
    with patch("study_tracker.app.Prompt.ask", side_effect=["Biology", "BIO1", "2026-05-01"]):
        cmd_add_course(store)
    [course] = store.list_courses()
    assert course.code == "BIO1"
    assert course.exam_date == datetime(2026, 5, 1)


def test_cmd_add_course_rejects_bad_date(tmp_db):
    init_db(tmp_db)
    store = SqliteStore(tmp_db)
    with patch("study_tracker.app.Prompt.ask", side_effect=["Biology", "BIO1", "next week"]):
        cmd_add_course(store)
    assert store.list_courses() == []


def test_cmd_toggle_goes_through_coordinator(tmp_db):
    init_db(tmp_db)
    store = SqliteStore(tmp_db)
    course = store.create_course("Biology", "BIO1", datetime.now() + timedelta(days=30))
    topic = store.create_topic(course.id, "Cells")
    coordinator = OptimisticCoordinator(AsyncStore(store))
    with patch("study_tracker.app.IntPrompt.ask", side_effect=[1, 1]):
        asyncio.run(cmd_toggle(coordinator, store))
    assert store.list_topics(course.id)[0].status == "in_progress"
    assert coordinator.topics(course.id)[0].id == topic.id


def test_read_all_hides_alerts(tmp_db, capsys):
    init_db(tmp_db)
    store = SqliteStore(tmp_db)
    store.create_course("Biology", "BIO1", datetime.now() + timedelta(days=3))
    config = EngineConfig()
    cmd_read(store, config)
    assert len(store.read_ids()) == 2
    cmd_alerts(store, config)
    assert "No notifications yet" in capsys.readouterr().out


def test_cmd_edit_applies_changed_fields(tmp_db):
    init_db(tmp_db)
    store = SqliteStore(tmp_db)
    course = store.create_course("Biology", "BIO1", datetime.now() + timedelta(days=30))
    store.create_topic(course.id, "Cells", hours_spent=1.0)
    coordinator = OptimisticCoordinator(AsyncStore(store))
    with patch("study_tracker.app.IntPrompt.ask", side_effect=[1, 1]), \
            patch("study_tracker.app.Prompt.ask", side_effect=["Cell biology", "completed"]), \
            patch("study_tracker.app.FloatPrompt.ask", return_value=2.5):
        asyncio.run(cmd_edit(coordinator, store))
    [topic] = store.list_topics(course.id)
    assert (topic.name, topic.hours_spent, topic.status) == ("Cell biology", 2.5, "completed")
    assert coordinator.summary(course.id).progress == 100


def test_cmd_edit_without_changes_skips_write(tmp_db, capsys):
    init_db(tmp_db)
    store = SqliteStore(tmp_db)
    course = store.create_course("Biology", "BIO1", datetime.now() + timedelta(days=30))
    store.create_topic(course.id, "Cells")
    coordinator = OptimisticCoordinator(AsyncStore(store))
    with patch("study_tracker.app.IntPrompt.ask", side_effect=[1, 1]), \
            patch("study_tracker.app.Prompt.ask", side_effect=["Cells", "not_started"]), \
            patch("study_tracker.app.FloatPrompt.ask", return_value=0.0):
        asyncio.run(cmd_edit(coordinator, store))
    assert "Nothing changed" in capsys.readouterr().out


def test_cmd_courses_search(tmp_db, capsys):
    init_db(tmp_db)
    store = SqliteStore(tmp_db)
    store.create_course("Biology", "BIO1", datetime.now() + timedelta(days=30))
    store.create_course("Chemistry", "CHEM1", datetime.now() + timedelta(days=30))
    with patch("study_tracker.app.Prompt.ask", return_value="chem"):
        cmd_courses(store, EngineConfig())
    out = capsys.readouterr().out
    assert "CHEM1" in out
    assert "BIO1" not in out


def test_cmd_delete_course(tmp_db):
    init_db(tmp_db)
    store = SqliteStore(tmp_db)
    course = store.create_course("Biology", "BIO1", datetime.now() + timedelta(days=30))
    store.create_topic(course.id, "Cells")
    with patch("study_tracker.app.IntPrompt.ask", return_value=1), \
            patch("study_tracker.app.Confirm.ask", return_value=True):
        cmd_delete_course(store)
    assert store.list_courses() == []
    assert store.list_topics(course.id) == []


def test_cmd_settings_saves_override(tmp_db):
    init_db(tmp_db)
    with patch("study_tracker.app.Prompt.ask", return_value="neglect_days"), \
            patch("study_tracker.app.FloatPrompt.ask", return_value=10.0):
        config = cmd_settings(tmp_db, EngineConfig())
    assert config.neglect_days == 10
    assert load_config(tmp_db).neglect_days == 10
