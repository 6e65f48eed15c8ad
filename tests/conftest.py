import pytest

from study_tracker.models import Topic


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tracker.db")
    return db_path


@pytest.fixture
def make_topic():
    def _make(topic_id, status="not_started", parent=None, hours=0.0, course_id="c1", name=None):
        return Topic(
            id=topic_id,
            course_id=course_id,
            name=name or f"Topic {topic_id}",
            status=status,
            hours_spent=hours,
            parent_topic_id=parent,
        )
    return _make
