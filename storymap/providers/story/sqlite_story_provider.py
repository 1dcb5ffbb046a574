"""SQLite-backed story persistence provider.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IStoryProvider).
# Pattern: Adapter pattern — wraps SQLite behind the IStoryProvider ABC
#          so the persistence backend can be swapped without touching
#          StoryService or the API routes.
#
# Database: ``data/stories.db``.
#
#   stories        one row per story header (camelCase fields of Story)
#   story_events   one row per story holding the whole event list as a
#                  JSON array; the list is always read and replaced as a
#                  unit, never patched in place.
#
# Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` for
# concurrent read safety.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from storymap.interfaces.story_provider import IStoryProvider
from storymap.models.story import Story

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/stories.db")

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_STORIES_TABLE = """\
CREATE TABLE IF NOT EXISTS stories (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    story_id      TEXT    NOT NULL UNIQUE,
    name          TEXT    NOT NULL,
    language      TEXT    NOT NULL DEFAULT 'en',
    voice_id      TEXT    NOT NULL DEFAULT '',
    event_count   INTEGER NOT NULL DEFAULT 0,
    published     INTEGER NOT NULL DEFAULT 0,
    date_created  TEXT    NOT NULL
);
"""

_CREATE_EVENTS_TABLE = """\
CREATE TABLE IF NOT EXISTS story_events (
    story_id    TEXT NOT NULL PRIMARY KEY REFERENCES stories(story_id),
    events_json TEXT NOT NULL DEFAULT '[]',
    updated_at  TEXT NOT NULL
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_stories_created ON stories(date_created);",
]

# ── DML ───────────────────────────────────────────────────────────────

_STORY_COLUMNS = "story_id, name, language, voice_id, event_count, published, date_created"

_INSERT_STORY = f"""\
INSERT INTO stories ({_STORY_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?);
"""

_UPSERT_EVENTS = """\
INSERT INTO story_events (story_id, events_json, updated_at)
VALUES (?, ?, datetime('now'))
ON CONFLICT(story_id)
DO UPDATE SET events_json = excluded.events_json,
              updated_at = excluded.updated_at;
"""

_SELECT_STORY = f"SELECT {_STORY_COLUMNS} FROM stories WHERE story_id = ?;"

_SELECT_ALL_STORIES = f"SELECT {_STORY_COLUMNS} FROM stories ORDER BY id ASC;"

_UPDATE_STORY = """\
UPDATE stories
SET name = ?, language = ?, voice_id = ?, event_count = ?, published = ?
WHERE story_id = ?;
"""

_UPDATE_EVENT_COUNT = "UPDATE stories SET event_count = ? WHERE story_id = ?;"

_SELECT_EVENTS = "SELECT events_json FROM story_events WHERE story_id = ?;"


class SQLiteStoryProvider(IStoryProvider):
    """SQLite-backed story and event-list persistence.

    Each story header is one row in ``stories``; its event list is one
    JSON document in ``story_events``.
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the story tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            # WAL mode enables concurrent readers while a writer is active.
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_STORIES_TABLE)
            await db.execute(_CREATE_EVENTS_TABLE)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("story_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_story"

    # ── Stories ────────────────────────────────────────────────────────

    async def list_stories(self) -> list[Story]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_ALL_STORIES)
            rows = await cursor.fetchall()
        return [self._row_to_story(dict(row)) for row in rows]

    async def count_stories(self) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM stories;")
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def get_story(self, story_id: str) -> Story | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_STORY, (story_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_story(dict(row))

    async def create_story(self, story: Story, events: list[dict[str, Any]]) -> Story:
        """Insert the header and its initial event list in one transaction."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_INSERT_STORY, (
                story.id,
                story.name,
                story.language.value,
                story.voice_id,
                story.event_count,
                int(story.published),
                story.date_created,
            ))
            await db.execute(_UPSERT_EVENTS, (story.id, json.dumps(events, ensure_ascii=False)))
            await db.commit()

        logger.info("story_created", story_id=story.id, event_count=story.event_count)
        return story

    async def update_story(self, story: Story) -> Story:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_UPDATE_STORY, (
                story.name,
                story.language.value,
                story.voice_id,
                story.event_count,
                int(story.published),
                story.id,
            ))
            await db.commit()
        logger.debug("story_updated", story_id=story.id)
        return story

    async def delete_story(self, story_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("DELETE FROM story_events WHERE story_id = ?;", (story_id,))
            cursor = await db.execute("DELETE FROM stories WHERE story_id = ?;", (story_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("story_deleted", story_id=story_id)
        return deleted

    # ── Events ─────────────────────────────────────────────────────────

    async def get_events(self, story_id: str) -> list[dict[str, Any]] | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("SELECT 1 FROM stories WHERE story_id = ?;", (story_id,))
            if await cursor.fetchone() is None:
                return None
            cursor = await db.execute(_SELECT_EVENTS, (story_id,))
            row = await cursor.fetchone()

        if row is None or not row[0]:
            return []
        events = json.loads(row[0])
        return events if isinstance(events, list) else []

    async def save_events(self, story_id: str, events: list[dict[str, Any]]) -> Story | None:
        """Replace the event list and refresh the cached ``event_count``."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(_UPDATE_EVENT_COUNT, (len(events), story_id))
            if cursor.rowcount == 0:
                return None
            await db.execute(_UPSERT_EVENTS, (story_id, json.dumps(events, ensure_ascii=False)))
            await db.commit()

        logger.info("story_events_saved", story_id=story_id, event_count=len(events))
        return await self.get_story(story_id)

    # ── Private helpers ────────────────────────────────────────────────

    @staticmethod
    def _row_to_story(row: dict[str, Any]) -> Story:
        return Story(
            id=row["story_id"],
            name=row["name"],
            language=row["language"],
            voice_id=row["voice_id"] or "",
            event_count=row["event_count"] or 0,
            published=bool(row["published"]),
            date_created=row["date_created"],
        )
