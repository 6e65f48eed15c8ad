"""Database initialization, connection management and the SQLite topic store."""
import asyncio
import logging
import sqlite3
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from study_tracker.errors import ConflictError, TransportError, ValidationError
from study_tracker.hierarchy import check_topic_fields, validate_hierarchy
from study_tracker.models import Course, Topic

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = str(Path.home() / ".study_tracker" / "tracker.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS courses (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    code TEXT NOT NULL,
    exam_date TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS topics (
    id TEXT NOT NULL,
    course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'not_started',
    hours_spent REAL NOT NULL DEFAULT 0,
    parent_topic_id TEXT,
    position INTEGER NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (course_id, id)
);

CREATE TABLE IF NOT EXISTS read_notifications (
    notification_id TEXT PRIMARY KEY,
    read_at TEXT
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def _row_to_topic(row: sqlite3.Row) -> Topic:
    return Topic(
        id=row["id"],
        course_id=row["course_id"],
        name=row["name"],
        status=row["status"],
        hours_spent=row["hours_spent"],
        parent_topic_id=row["parent_topic_id"],
    )


def _row_to_course(row: sqlite3.Row) -> Course:
    return Course(
        id=row["id"],
        name=row["name"],
        code=row["code"],
        exam_date=datetime.fromisoformat(row["exam_date"]),
    )


class SqliteStore:
    """Persistence collaborator backed by a local SQLite file.

    Courses come back bare; the engine fills in their derived fields.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def create_course(self, name: str, code: str, exam_date: datetime,
                      now: Optional[datetime] = None) -> Course:
        course_id = uuid.uuid4().hex
        conn = get_connection(self.db_path)
        conn.execute(
            "INSERT INTO courses (id, name, code, exam_date, created_at) VALUES (?, ?, ?, ?, ?)",
            (course_id, name, code, exam_date.isoformat(), (now or datetime.now()).isoformat()),
        )
        conn.commit()
        conn.close()
        logger.info("Created course %s (%s)", code, course_id)
        return Course(id=course_id, name=name, code=code, exam_date=exam_date)

    def list_courses(self) -> list[Course]:
        conn = get_connection(self.db_path)
        rows = conn.execute("SELECT * FROM courses ORDER BY created_at, rowid").fetchall()
        conn.close()
        return [_row_to_course(r) for r in rows]

    def delete_course(self, course_id: str) -> None:
        conn = get_connection(self.db_path)
        conn.execute("DELETE FROM courses WHERE id = ?", (course_id,))
        conn.commit()
        conn.close()

    def create_topic(self, course_id: str, name: str, parent_topic_id: Optional[str] = None,
                     hours_spent: float = 0.0, now: Optional[datetime] = None) -> Topic:
        check_topic_fields({"name": name, "hours_spent": hours_spent})
        topic = Topic(
            id=uuid.uuid4().hex,
            course_id=course_id,
            name=name,
            hours_spent=hours_spent,
            parent_topic_id=parent_topic_id,
        )
        validate_hierarchy(self.list_topics(course_id) + [topic])
        conn = get_connection(self.db_path)
        position = conn.execute(
            "SELECT COALESCE(MAX(position), -1) + 1 FROM topics WHERE course_id = ?", (course_id,)
        ).fetchone()[0]
        conn.execute(
            """INSERT INTO topics (id, course_id, name, status, hours_spent, parent_topic_id, position, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (topic.id, course_id, name, topic.status, hours_spent, parent_topic_id, position,
             (now or datetime.now()).isoformat()),
        )
        conn.commit()
        conn.close()
        return topic

    def list_topics(self, course_id: str) -> list[Topic]:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            "SELECT * FROM topics WHERE course_id = ? ORDER BY position", (course_id,)
        ).fetchall()
        conn.close()
        return [_row_to_topic(r) for r in rows]

    def update_topic(self, course_id: str, topic_id: str, fields: dict,
                     now: Optional[datetime] = None) -> Topic:
        """Merge fields into the stored topic and return the stored result."""
        check_topic_fields(fields)
        topics = self.list_topics(course_id)
        current = next((t for t in topics if t.id == topic_id), None)
        if current is None:
            raise ConflictError(f"Topic {topic_id!r} no longer exists in course {course_id!r}")
        if "parent_topic_id" in fields:
            merged = [
                replace(t, parent_topic_id=fields["parent_topic_id"]) if t.id == topic_id else t
                for t in topics
            ]
            validate_hierarchy(merged)
        assignments = ", ".join(f"{name} = ?" for name in fields)
        conn = get_connection(self.db_path)
        conn.execute(
            f"UPDATE topics SET {assignments}, updated_at = ? WHERE course_id = ? AND id = ?",
            (*fields.values(), (now or datetime.now()).isoformat(), course_id, topic_id),
        )
        conn.commit()
        row = conn.execute(
            "SELECT * FROM topics WHERE course_id = ? AND id = ?", (course_id, topic_id)
        ).fetchone()
        conn.close()
        return _row_to_topic(row)

    def delete_topic(self, course_id: str, topic_id: str) -> None:
        """Delete a topic together with its sub-topics."""
        conn = get_connection(self.db_path)
        conn.execute(
            "DELETE FROM topics WHERE course_id = ? AND (id = ? OR parent_topic_id = ?)",
            (course_id, topic_id, topic_id),
        )
        conn.commit()
        conn.close()

    def last_activity(self, course_id: str) -> datetime | None:
        """Most recent topic change, falling back to when the course was created."""
        conn = get_connection(self.db_path)
        row = conn.execute(
            """SELECT COALESCE(MAX(t.updated_at), c.created_at) AS last
            FROM courses c LEFT JOIN topics t ON t.course_id = c.id
            WHERE c.id = ?""",
            (course_id,),
        ).fetchone()
        conn.close()
        if row is None or row["last"] is None:
            return None
        return datetime.fromisoformat(row["last"])

    def mark_read(self, notification_ids: list[str], now: Optional[datetime] = None) -> None:
        read_at = (now or datetime.now()).isoformat()
        conn = get_connection(self.db_path)
        conn.executemany(
            "INSERT OR IGNORE INTO read_notifications (notification_id, read_at) VALUES (?, ?)",
            [(nid, read_at) for nid in notification_ids],
        )
        conn.commit()
        conn.close()

    def read_ids(self) -> set[str]:
        conn = get_connection(self.db_path)
        rows = conn.execute("SELECT notification_id FROM read_notifications").fetchall()
        conn.close()
        return {r["notification_id"] for r in rows}


class AsyncStore:
    """Runs a synchronous store's calls in a worker thread.

    SQLite operational failures (locked or unreachable file) surface as
    TransportError so the coordinator rolls back.
    """

    def __init__(self, store: SqliteStore):
        self.store = store

    async def _call(self, method, *args):
        try:
            return await asyncio.to_thread(method, *args)
        except sqlite3.OperationalError as e:
            raise TransportError(str(e)) from e

    async def list_courses(self) -> list[Course]:
        return await self._call(self.store.list_courses)

    async def list_topics(self, course_id: str) -> list[Topic]:
        return await self._call(self.store.list_topics, course_id)

    async def update_topic(self, course_id: str, topic_id: str, fields: dict) -> Topic:
        return await self._call(self.store.update_topic, course_id, topic_id, fields)

    async def delete_topic(self, course_id: str, topic_id: str) -> None:
        return await self._call(self.store.delete_topic, course_id, topic_id)
